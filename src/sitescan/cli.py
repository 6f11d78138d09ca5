"""Command-line entry point: scan one site and print a summary."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from sitescan.browser_config import BrowserConfig
from sitescan.config import AuditThresholds, ScanConfig, settings
from sitescan.constants import DEFAULT_VIEWPORT_IDS, VIEWPORT_PRESETS
from sitescan.events import SCAN_PROGRESS, QUEUE_UPDATE, CallbackEventSink
from sitescan.logging_config import setup_logging
from sitescan.models import ScanStatus, Severity
from sitescan.queue_manager import InvalidSubmissionError, ScanQueueManager
from sitescan.scanner import ScanPipeline


def parse_args(argv=None):
    """Parse command line arguments."""
    scan_config = ScanConfig.from_env()

    parser = argparse.ArgumentParser(
        description="Audit a website across viewports and score it by category"
    )
    parser.add_argument("url", help="Absolute http(s) URL to scan")
    parser.add_argument(
        "--viewports", nargs="+", default=list(DEFAULT_VIEWPORT_IDS),
        choices=sorted(VIEWPORT_PRESETS),
        help=f"Viewport presets to test (default: {' '.join(DEFAULT_VIEWPORT_IDS)})"
    )
    parser.add_argument(
        "--pages", type=int, default=None,
        help=f"Maximum pages to scan; negative for no limit (default: {scan_config.default_page_limit})"
    )
    parser.add_argument(
        "--depth", type=int, default=scan_config.max_depth,
        help=f"Maximum link depth from the start URL (default: {scan_config.max_depth})"
    )
    parser.add_argument(
        "--output", type=str, metavar="PATH",
        help="Write the full JSON report to this file"
    )
    parser.add_argument(
        "--thresholds", type=str, metavar="PATH",
        help="JSON file with audit thresholds"
    )
    parser.add_argument(
        "--browser", choices=["chromium", "firefox", "webkit"], default=settings.BROWSER_TYPE,
        help=f"Browser engine (default: {settings.BROWSER_TYPE})"
    )
    parser.add_argument(
        "--headed", action="store_true",
        help="Show the browser window while scanning"
    )
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        help=f"Log level (default: {settings.LOG_LEVEL})"
    )
    return parser.parse_args(argv)


def print_event(room: str, event: str, payload: dict) -> None:
    """Print progress events as they arrive."""
    if event == SCAN_PROGRESS:
        print(f"  [{payload['progress']:3d}%] {payload['message']}")
    elif event == QUEUE_UPDATE:
        print(f"  Queued at position {payload['queuePosition']} "
              f"(~{payload['estimatedWaitSeconds']}s)")


def print_summary(report: dict) -> None:
    """Print the overall score, category scores and issue counts."""
    print("\n" + "=" * 60)
    print(f"Overall score: {report['overallScore']}/100")
    print("=" * 60)

    for category, score in report["categories"].items():
        print(f"  {category:<26} {score:>3}")

    counts = {severity.value: 0 for severity in Severity}
    for issue in report["issues"]:
        counts[issue["severity"]] += 1

    print(f"\nIssues: {len(report['issues'])} "
          + ", ".join(f"{count} {name}" for name, count in counts.items()))

    print("\nPages:")
    for page in report["pages"]:
        print(f"  {page['score']:>3}  {page['url']} ({len(page['issues'])} issues)")


async def run_scan(args) -> int:
    """Submit one job and wait for it. Returns the process exit code."""
    scan_config = ScanConfig.from_env()
    scan_config.max_depth = args.depth

    browser_config = BrowserConfig(
        headless=settings.HEADLESS and not args.headed,
        browser_type=args.browser,
    )
    thresholds = (
        AuditThresholds.from_file(args.thresholds)
        if args.thresholds else AuditThresholds.from_env()
    )

    manager = ScanQueueManager(
        pipeline=ScanPipeline(browser_config, scan_config, thresholds),
        sink=CallbackEventSink(print_event),
        config=scan_config,
    )

    try:
        result = manager.submit(args.url, args.viewports, args.pages)
    except InvalidSubmissionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Scanning {args.url} (job {result.job_id})")
    job = await manager.wait_for(result.job_id)

    if job.status != ScanStatus.COMPLETE:
        print(f"\n❌ {job.message}", file=sys.stderr)
        return 1

    report = job.report.to_dict()
    print_summary(report)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(report, f, indent=2)
        print(f"\n✅ Report saved to {output_path}")

    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=args.log_level, log_file=settings.LOG_FILE)
    return asyncio.run(run_scan(args))


if __name__ == "__main__":
    sys.exit(main())
