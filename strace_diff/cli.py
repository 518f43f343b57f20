"""Command-line interface for strace-diff."""

import argparse
import json
import logging
import sys
from pathlib import Path

import uvicorn

from .parse import PARSERS, parse_trace
from .report import DEFAULT_TOP_CALLS, diff_files
from .server import DEFAULT_PORT, create_app


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer: {value}")
    return number


def run_parse(args: argparse.Namespace) -> None:
    """Parse one trace and write its events as JSON."""
    input_file = Path(args.input)
    trace = parse_trace(
        input_file.read_text(encoding="utf-8", errors="replace"), input_file.name, args.format
    )

    output_file = Path(args.output)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(trace.to_dict(), f, ensure_ascii=False, indent=2)

    print(f"Parsed {trace.stats.total_events} calls from {input_file.name}")
    print(f"  Wall time:   {trace.stats.total_wall_time:.6f}s")
    print(f"  Kernel time: {trace.stats.total_kernel_time:.6f}s")
    print(f"  Idle time:   {trace.stats.total_idle_time:.6f}s")
    print(f"Output written to: {args.output}")


def run_diff(args: argparse.Namespace) -> None:
    """Run the trace comparison."""
    diff_files(
        args.trace_a,
        args.trace_b,
        args.output,
        args.format,
        pids=args.pid,
        slow_only=args.slow_only,
        top=args.top,
    )


def run_serve(args: argparse.Namespace) -> None:
    """Run the HTTP API server."""
    app = create_app()

    print("Starting strace-diff server...")
    print(f"  Listening on: http://{args.host}:{args.port}")
    print()

    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


def main():
    """Main entry point for the CLI."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="strace-diff - Align and compare two system call traces"
    )
    subparsers = parser.add_subparsers(dest="command")

    # parse subcommand
    parse_parser = subparsers.add_parser("parse", help="Parse a single trace to JSON")
    parse_parser.add_argument(
        "input",
        help="Trace log file path",
    )
    parse_parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="./trace.json",
        help="Output JSON file path (default: ./trace.json)",
    )
    parse_parser.add_argument(
        "--format",
        type=str,
        choices=sorted(PARSERS),
        default="strace",
        help="Trace format: strace (default) or perf",
    )

    # diff subcommand
    diff_parser = subparsers.add_parser("diff", help="Align two traces and write a JSON report")
    diff_parser.add_argument(
        "trace_a",
        help="Baseline trace file path",
    )
    diff_parser.add_argument(
        "trace_b",
        help="Comparison trace file path",
    )
    diff_parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="./diff.json",
        help="Output JSON file path (default: ./diff.json)",
    )
    diff_parser.add_argument(
        "--format",
        type=str,
        choices=sorted(PARSERS),
        default="strace",
        help="Trace format of both inputs: strace (default) or perf",
    )
    diff_parser.add_argument(
        "--pid",
        type=int,
        action="append",
        help="Only keep rows for this process id (repeatable)",
    )
    diff_parser.add_argument(
        "--slow-only",
        action="store_true",
        help="Only keep rows where a call took longer than 1 ms",
    )
    diff_parser.add_argument(
        "--top",
        type=_non_negative_int,
        default=DEFAULT_TOP_CALLS,
        help=f"Number of call names in the time-difference table (default: {DEFAULT_TOP_CALLS})",
    )

    # serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API server")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )

    args = parser.parse_args()

    try:
        if args.command == "parse":
            run_parse(args)
        elif args.command == "diff":
            run_diff(args)
        elif args.command == "serve":
            run_serve(args)
        else:
            parser.print_help()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
