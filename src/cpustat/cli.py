"""Command line interface for cpustat."""

import argparse
import json
import logging
import sys

from cpustat.accessor import CpuStat
from cpustat.config import build_accessor, load_settings
from cpustat.errors import CpuStatError, OutOfRangeError
from cpustat.logging_config import setup_logging
from cpustat.models import StatSnapshot

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INVALID_USAGE = 2


def format_snapshot(snapshot: StatSnapshot) -> str:
    """Render a snapshot as ``name=value`` pairs in registry order."""
    return " ".join(f"{name}={value}" for name, value in snapshot.items())


def cmd_count(accessor: CpuStat, args: argparse.Namespace) -> None:
    print(accessor.count())


def cmd_fields(accessor: CpuStat, args: argparse.Namespace) -> None:
    for name in accessor.fields():
        print(name)


def cmd_get(accessor: CpuStat, args: argparse.Namespace) -> None:
    if args.per_cpu:
        snapshots = [accessor.get(cpu) for cpu in range(accessor.count())]
    else:
        snapshots = [accessor.get(args.cpu)]

    if args.json:
        if args.per_cpu:
            payload = {f"cpu{snap.cpu}": snap.as_dict() for snap in snapshots}
        else:
            payload = snapshots[0].as_dict()
        print(json.dumps(payload, indent=2))
        return

    for snap in snapshots:
        label = "all" if snap.is_aggregate else f"cpu{snap.cpu}"
        print(f"{label}: {format_snapshot(snap)}" if args.per_cpu else format_snapshot(snap))


def cmd_top(accessor: CpuStat, args: argparse.Namespace) -> None:
    # Deferred so the plain subcommands do not pay for importing textual
    from cpustat.app import CpuStatApp

    CpuStatApp(accessor, poll_rate=args.interval).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpustat",
        description="Read cumulative per-CPU time counters (clock ticks).",
    )
    parser.add_argument("--env-file", help="Load CPUSTAT_* settings from this file")
    parser.add_argument("--log-level", help="Override CPUSTAT_LOG_LEVEL")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose log format"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    count_parser = sub.add_parser("count", help="Print the number of CPU slots")
    count_parser.set_defaults(func=cmd_count)

    fields_parser = sub.add_parser("fields", help="List the counter names")
    fields_parser.set_defaults(func=cmd_fields)

    get_parser = sub.add_parser("get", help="Print counters for one CPU or all")
    get_parser.add_argument(
        "cpu", nargs="?", type=int, default=None, help="CPU index; omit to sum all"
    )
    get_parser.add_argument("--json", action="store_true", help="Print JSON")
    get_parser.add_argument(
        "--per-cpu", action="store_true", help="Print one line per CPU"
    )
    get_parser.set_defaults(func=cmd_get)

    top_parser = sub.add_parser("top", help="Live counter table")
    top_parser.add_argument(
        "--interval", type=float, default=None, help="Poll interval in seconds"
    )
    top_parser.set_defaults(func=cmd_top)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``cpustat`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "get" and args.per_cpu and args.cpu is not None:
        parser.error("--per-cpu cannot be combined with a CPU index")

    try:
        settings = load_settings(args.env_file)
        setup_logging(args.log_level or settings.log_level, verbose=args.verbose)
        if args.cmd == "top" and args.interval is None:
            args.interval = settings.poll_rate
        accessor = build_accessor(settings)
        args.func(accessor, args)
    except OutOfRangeError as exc:
        print(f"cpustat: {exc.message}", file=sys.stderr)
        return EXIT_INVALID_USAGE
    except CpuStatError as exc:
        logger.debug("Command %s failed", args.cmd, exc_info=True)
        print(f"cpustat: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
