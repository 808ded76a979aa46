"""Command-line entry point: capture queue traffic per host and report usage."""

from __future__ import annotations

import argparse
import logging
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .analysis import ContentFilter, analyze_capture, compile_content_filter
from .capture import DEFAULT_PORT, CaptureOptions, CaptureRunner, TerminalCredentialProvider
from .config import load_user_config
from .errors import NoTargetsError, QueueStatError
from .percentiles import DEFAULT_PERCENTILES
from .report import ReportOptions, format_report
from .utils import HostResolver

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s: %(message)s"


@dataclass
class TargetResult:
    label: str
    report: Optional[str] = None
    exit_code: int = 0


def parse_percentiles(value: str) -> List[float]:
    try:
        return [float(item) for item in value.split(",") if item.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid percentile list: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Capture queue protocol traffic and summarise operations per host and queue.",
    )
    parser.add_argument(
        "targets",
        nargs="*",
        help="Hosts to capture on (locally, or over ssh with --remote).",
    )
    parser.add_argument(
        "--read",
        action="append",
        type=Path,
        default=[],
        metavar="PCAP",
        help="Reprocess an existing capture file instead of capturing (repeatable).",
    )
    parser.add_argument("--config", type=Path, help="JSON file with default option values.")
    parser.add_argument("--remote", action="store_true", help="Capture on each target over ssh.")
    parser.add_argument("--sudo", action="store_true", help="Run tcpdump through sudo.")
    parser.add_argument("--resolve", action="store_true", help="Show source hosts by reverse DNS name.")
    parser.add_argument("--dry-run", action="store_true", help="Print capture commands without running them.")
    parser.add_argument("--interface", default="any", help="Capture interface (default: any).")
    parser.add_argument(
        "--snaplen",
        type=int,
        default=1500,
        metavar="BYTES",
        help="Bytes captured per packet (default: 1500).",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=10_000,
        metavar="PACKETS",
        help="Number of packets to capture (default: 10000).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Queue server port to capture (default: {DEFAULT_PORT}).",
    )
    parser.add_argument("--remote-dir", default="/tmp", help="Remote directory for temporary captures.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Keep capture files in this directory (default: a temporary directory).",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=4,
        metavar="N",
        help="Number of hosts processed concurrently (default: 4).",
    )
    parser.add_argument("--no-summary", action="store_true", help="Omit the all/matched/filtered table.")
    parser.add_argument("--no-hosts", action="store_true", help="Omit the per source host table.")
    parser.add_argument("--no-queues", action="store_true", help="Omit the per queue table.")
    parser.add_argument("--filter", metavar="REGEX", help="Only count payloads matching this pattern.")
    parser.add_argument("--sizes", action="store_true", help="Report enqueue size percentiles per queue.")
    parser.add_argument(
        "--percentiles",
        default=",".join(f"{p:g}" for p in DEFAULT_PERCENTILES),
        metavar="LIST",
        help="Comma separated percentiles for --sizes (default: 50,90,99).",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debugging detail.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for diagnostic output (overrides -q/-v).",
    )
    return parser


def configure_logging(args: argparse.Namespace) -> None:
    if args.log_level:
        level = getattr(logging, args.log_level)
    elif args.quiet:
        level = logging.WARNING
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


def process_target(
    label: str,
    *,
    capture_file: Optional[Path],
    runner: Optional[CaptureRunner],
    content_filter: Optional[ContentFilter],
    report_options: ReportOptions,
    resolver: Optional[Callable[[str], str]],
) -> TargetResult:
    try:
        if capture_file is None:
            if runner is None:
                raise QueueStatError(f"No capture configured for {label}")
            capture_file = runner.capture(label)
            if capture_file is None:
                return TargetResult(label)
        stats = analyze_capture(
            capture_file,
            label,
            track_sizes=report_options.sizes,
            content_filter=content_filter,
        )
    except QueueStatError as exc:
        logger.error("%s: %s", label, exc)
        return TargetResult(label, exit_code=exc.exit_code)
    except Exception:  # pragma: no cover - unexpected runtime failures
        logger.exception("Failed processing %s", label)
        return TargetResult(label, exit_code=1)

    return TargetResult(label, report=format_report(stats, report_options, resolver))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    preliminary, _ = parser.parse_known_args(argv)
    configure_logging(preliminary)

    try:
        defaults = load_user_config(preliminary.config, required=preliminary.config is not None)
    except QueueStatError as exc:
        logger.error(str(exc))
        return exc.exit_code
    parser.set_defaults(**defaults)
    args = parser.parse_args(argv)
    configure_logging(args)

    try:
        percentiles = parse_percentiles(args.percentiles)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    if args.jobs < 1:
        parser.error("--jobs must be at least 1")

    try:
        if not args.targets and not args.read:
            raise NoTargetsError("No target hosts or capture files specified")
        content_filter = compile_content_filter(args.filter)
    except QueueStatError as exc:
        logger.error(str(exc))
        return exc.exit_code

    report_options = ReportOptions(
        summary=not args.no_summary,
        hosts=not args.no_hosts,
        queues=not args.no_queues,
        sizes=args.sizes,
        percentiles=percentiles,
        resolve_names=args.resolve,
    )
    resolver = HostResolver() if args.resolve else None

    with ExitStack() as stack:
        if args.output_dir is not None:
            output_dir = args.output_dir
        else:
            output_dir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="queuestat-")))

        runner = None
        if args.targets:
            runner = CaptureRunner(
                CaptureOptions(
                    interface=args.interface,
                    snaplen=args.snaplen,
                    packet_count=args.count,
                    port=args.port,
                    remote=args.remote,
                    sudo=args.sudo,
                    remote_dir=args.remote_dir,
                    dry_run=args.dry_run,
                ),
                output_dir,
                credential_provider=TerminalCredentialProvider() if args.sudo else None,
                status_handler=lambda message: print(message, file=sys.stderr),
            )

        jobs = [(str(path), path) for path in args.read] + [(host, None) for host in args.targets]
        with ThreadPoolExecutor(max_workers=min(args.jobs, len(jobs))) as pool:
            futures = [
                pool.submit(
                    process_target,
                    label,
                    capture_file=capture_file,
                    runner=runner,
                    content_filter=content_filter,
                    report_options=report_options,
                    resolver=resolver,
                )
                for label, capture_file in jobs
            ]

            exit_code = 0
            for future in futures:
                result = future.result()
                if result.report is not None:
                    sys.stdout.write(result.report)
                    sys.stdout.flush()
                if result.exit_code and not exit_code:
                    exit_code = result.exit_code

    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
