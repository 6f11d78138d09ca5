from dotenv import load_dotenv
from dataclasses import dataclass
from pathlib import Path
import json
import logging
import os

from sitescan.constants import (
    DEFAULT_MAX_CONCURRENT_SCANS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_SCAN_DURATION_SECONDS,
    MAX_DURATION_SAMPLES,
)

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    LOG_LEVEL = os.getenv("SITESCAN_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("SITESCAN_LOG_FILE")
    BROWSER_TYPE = os.getenv("SITESCAN_BROWSER", "chromium")
    HEADLESS = os.getenv("SITESCAN_HEADLESS", "true").lower() != "false"


settings = Settings()


@dataclass
class ScanConfig:
    """Configuration for the scan queue and crawl bounds."""
    max_concurrent_scans: int = DEFAULT_MAX_CONCURRENT_SCANS
    default_page_limit: int = DEFAULT_PAGE_LIMIT
    max_depth: int = DEFAULT_MAX_DEPTH
    duration_samples: int = MAX_DURATION_SAMPLES
    default_scan_duration: float = DEFAULT_SCAN_DURATION_SECONDS

    @classmethod
    def from_env(cls) -> "ScanConfig":
        """Load configuration from environment variables.

        Returns:
            ScanConfig: Configuration instance with values from environment
        """
        return cls(
            max_concurrent_scans=int(os.getenv(
                "SITESCAN_MAX_CONCURRENT_SCANS", str(DEFAULT_MAX_CONCURRENT_SCANS)
            )),
            default_page_limit=int(os.getenv(
                "SITESCAN_DEFAULT_PAGE_LIMIT", str(DEFAULT_PAGE_LIMIT)
            )),
            max_depth=int(os.getenv("SITESCAN_MAX_DEPTH", str(DEFAULT_MAX_DEPTH))),
            duration_samples=int(os.getenv(
                "SITESCAN_DURATION_SAMPLES", str(MAX_DURATION_SAMPLES)
            )),
            default_scan_duration=float(os.getenv(
                "SITESCAN_DEFAULT_SCAN_DURATION", str(DEFAULT_SCAN_DURATION_SECONDS)
            )),
        )


@dataclass
class AuditThresholds:
    """Configurable thresholds for page audits."""

    # Core Web Vitals (milliseconds for time-based, decimal for CLS)
    lcp_max_ms: float = 2500
    fcp_max_ms: float = 1800
    cls_max: float = 0.1

    # Fallback when LCP was never observed
    slow_load_ms: float = 5000

    # Heading levels may step down by at most this much
    max_heading_jump: int = 1

    @classmethod
    def from_env(cls) -> "AuditThresholds":
        """Load thresholds from environment variables.

        Environment variables should be prefixed with SITESCAN_THRESHOLD_
        e.g., SITESCAN_THRESHOLD_LCP_MAX_MS=3000

        Returns:
            AuditThresholds with values from environment
        """
        thresholds = cls()
        prefix = "SITESCAN_THRESHOLD_"

        for field_name in thresholds.__dataclass_fields__:
            env_key = f"{prefix}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                field_type = thresholds.__dataclass_fields__[field_name].type
                try:
                    if field_type == int:
                        setattr(thresholds, field_name, int(env_value))
                    elif field_type == float:
                        setattr(thresholds, field_name, float(env_value))
                except ValueError:
                    logger.warning(f"Ignoring invalid value for {env_key}: {env_value!r}")

        return thresholds

    @classmethod
    def from_file(cls, path: str) -> "AuditThresholds":
        """Load thresholds from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            AuditThresholds with values from file
        """
        thresholds = cls()
        file_path = Path(path)

        if not file_path.exists():
            return thresholds

        with open(file_path, 'r') as f:
            config = json.load(f)

        threshold_config = config.get('thresholds', config)

        for field_name in thresholds.__dataclass_fields__:
            if field_name in threshold_config:
                setattr(thresholds, field_name, threshold_config[field_name])

        return thresholds

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary.

        Returns:
            Dictionary of all threshold values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


# Global default thresholds instance
default_thresholds = AuditThresholds()
