from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, TextIO

from ._rounds import parse_rounds, validate_rounds
from .errors import SystemsError
from .json_converter import to_json
from .parse import parse
from .types import RunSpec

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with a clean format for terminal output."""
    level = logging.DEBUG if verbose else logging.WARNING

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # stdout carries the rendered table
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []
    root_logger.addHandler(handler)


def _rounds_arg(value: str) -> int:
    try:
        return validate_rounds(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_run_spec(args: argparse.Namespace) -> RunSpec:
    if args.csv:
        return RunSpec(rounds=args.rounds, sep=",", pad=False, output="json" if args.json else "table")
    return RunSpec(rounds=args.rounds, output="json" if args.json else "table")


def _read_spec(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def cmd_check(txt: str, out: TextIO, as_json: bool) -> int:
    model = parse(txt, tracebacks=False)
    issues = model.check()
    if as_json:
        print(to_json(list(issues)), file=out)
    elif not issues:
        print("No issues found.", file=out)
    else:
        for issue in issues:
            where = f" [{issue.variable}]" if issue.variable else ""
            print(f"{issue.severity}{where}: {issue.message}", file=out)
    return 1 if any(issue.severity == "error" for issue in issues) else 0


def cmd_run(txt: str, spec: RunSpec, out: TextIO) -> int:
    model = parse(txt, tracebacks=False)
    run = model.get_run(rounds=spec.rounds)
    logger.info("ran %r for %d round(s)", model.name, spec.rounds)
    if spec.output == "json":
        print(to_json(run), file=out)
    else:
        print(run.render(sep=spec.sep, pad=spec.pad), file=out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="systems-run", description="Run a stock and flow spec")
    p.add_argument("spec", nargs="?", default="-", help="Spec file to run (default: read stdin)")
    p.add_argument(
        "-r", "--rounds",
        type=_rounds_arg,
        default=parse_rounds(os.getenv("SYSTEMS_ROUNDS", "")),
        help="Number of rounds to simulate (default: $SYSTEMS_ROUNDS or 10)",
    )
    p.add_argument("--csv", action="store_true", help="Render comma separated values without padding")
    p.add_argument("--json", action="store_true", help="Print results as JSON")
    p.add_argument("--check", action="store_true", help="Report model issues instead of running")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        txt = _read_spec(args.spec)
        if args.check:
            return cmd_check(txt, sys.stdout, args.json)
        return cmd_run(txt, build_run_spec(args), sys.stdout)
    except SystemsError as e:
        print("error: " + " ".join(str(e).splitlines()), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
