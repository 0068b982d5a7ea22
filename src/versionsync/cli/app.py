"""
CLI App - Main entry point for the versionsync command line tool.
"""

import argparse
import logging
import sys
from typing import Any

from versionsync import __version__
from versionsync.core.domain.enums import BumpKind
from versionsync.core.exceptions import VersionSyncError

from .commands import run_auto_fix, run_bump, run_drift_check, run_resolve, run_set, run_stores
from .exit_codes import ExitCode
from .factory import load_config
from .logging import setup_logging
from .output import Console


BUMP_CHOICES = [kind.value for kind in BumpKind]

COMMANDS = {
    "resolve": run_resolve,
    "drift-check": run_drift_check,
    "auto-fix": run_auto_fix,
    "set": run_set,
    "bump": run_bump,
    "stores": run_stores,
}


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser for versionsync.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="versionsync",
        description="Keep Flutter app versions in sync with App Store Connect and Google Play",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Next build number above whatever the stores have published
  versionsync resolve

  # Bump the patch version above the stores, preview only
  versionsync resolve --policy store_or_fallback:patch --dry-run

  # Offline: use the fallback version, bumped by one build
  versionsync resolve --policy fallback_only:build --fallback 1.0.0+1 --auto-increment

  # Fail if the stores disagree instead of taking the highest
  versionsync resolve --policy store_only:build --strict-stores

  # CI gate: non-zero exit when the descriptors disagree
  versionsync drift-check

  # Repair drift in one step
  versionsync auto-fix

  # Local-only operations
  versionsync set 2.0.0+1
  versionsync bump minor

  # What do the stores report right now?
  versionsync stores --json
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "--project",
        "-p",
        type=str,
        metavar="DIR",
        help="Flutter project root (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        metavar="FILE",
        help="Config file (default: .versionsync.yaml in the project root)",
    )

    output_group = parser.add_argument_group("Output")
    output_group.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    output_group.add_argument(
        "--quiet", "-q", action="store_true", help="Only print errors and a one-line summary"
    )
    output_group.add_argument("--json", action="store_true", help="Print the result as JSON on stdout")
    output_group.add_argument("--no-color", action="store_true", help="Disable colored output")
    output_group.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log format on stderr (default: text)",
    )
    output_group.add_argument("--log-file", type=str, metavar="PATH", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    # resolve
    resolve = subparsers.add_parser("resolve", help="Decide the next version and write it everywhere")
    resolve.add_argument(
        "--policy",
        type=str,
        metavar="STRATEGY:BUMP",
        help="store_or_fallback | fallback_only | store_only, optionally followed by :major|minor|patch|build|auto",
    )
    resolve.add_argument(
        "--auto-increment",
        action="store_true",
        help="Bump the fallback version when no store answers",
    )
    resolve.add_argument("--fallback", type=str, metavar="X.Y.Z+B", help="Version used when no store answers")
    resolve.add_argument(
        "--strict-stores",
        action="store_true",
        help="Fail when the stores report different versions",
    )
    _add_common_write_args(resolve, cache=True)

    # drift-check
    subparsers.add_parser("drift-check", help="Report disagreement between local descriptors")

    # auto-fix
    auto_fix = subparsers.add_parser("auto-fix", help="Unify drifted descriptors above every store version")
    auto_fix.add_argument("--bump", choices=BUMP_CHOICES, help="Bump kind applied above the stores")
    _add_common_write_args(auto_fix, cache=True)

    # set
    set_cmd = subparsers.add_parser("set", help="Write an explicit version to every target")
    set_cmd.add_argument("version", metavar="VERSION", help="Version as X.Y.Z or X.Y.Z+B")
    _add_common_write_args(set_cmd)

    # bump
    bump = subparsers.add_parser("bump", help="Bump the manifest version locally and propagate it")
    bump.add_argument("kind", nargs="?", choices=BUMP_CHOICES, help="Bump kind (default: configured, build)")
    _add_common_write_args(bump)

    # stores
    stores = subparsers.add_parser("stores", help="Show the versions the stores report")
    stores.add_argument("--no-cache", action="store_true", help="Ignore cached store versions")

    return parser


def _add_common_write_args(subparser: argparse.ArgumentParser, cache: bool = False) -> None:
    subparser.add_argument("--dry-run", action="store_true", help="Decide but do not write any file")
    subparser.add_argument(
        "--lock-timeout",
        type=float,
        metavar="SECONDS",
        help="Wait this long for another run to finish (default: fail immediately)",
    )
    if cache:
        subparser.add_argument("--no-cache", action="store_true", help="Ignore cached store versions")


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the versionsync CLI.

    Parses arguments, sets up logging, loads configuration and runs the
    selected command.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet or args.json:
        log_level = logging.ERROR
    else:
        log_level = logging.WARNING
    setup_logging(level=log_level, log_format=args.log_format, log_file=args.log_file)

    console = Console(
        color=not args.no_color,
        verbose=args.verbose,
        quiet=args.quiet,
        json_mode=args.json,
    )

    try:
        provider, config = load_config(args)
        errors = config.validate()
        if errors:
            console.config_errors(errors)
            return _failed(console, ExitCode.CONFIG_ERROR)
        console.debug(f"Config: {provider.name}, project {config.project.root}")

        code = ExitCode(COMMANDS[args.command](args, config, console))
        if code is not ExitCode.SUCCESS:
            console.debug(f"Exit {int(code)}: {code.description}")
        return code

    except KeyboardInterrupt:
        console.print(force=True)
        console.warning("Interrupted by user")
        return ExitCode.SIGINT

    except VersionSyncError as e:
        logging.getLogger("versionsync").debug("Command failed", exc_info=True)
        console.error_from_exception(e)
        return _failed(console, ExitCode.from_exception(e), error_type=type(e).__name__)

    except ValueError as e:
        # Bump kinds and strategies given on the command line
        console.error(str(e))
        return _failed(console, ExitCode.VALIDATION_ERROR, error_type=type(e).__name__)


def _failed(console: Console, code: ExitCode, error_type: str | None = None) -> ExitCode:
    """Report why the invocation failed and return its exit code."""
    if console.json_mode:
        payload: dict[str, Any] = {"success": False, "exit_code": int(code), "reason": code.description}
        if error_type:
            payload["error_type"] = error_type
        console.emit_json(payload)
    else:
        console.debug(f"Exit {int(code)}: {code.description}")
    return code


def run() -> None:
    """
    Entry point for the console script.

    Calls main() and exits with its return code.
    """
    sys.exit(main())


if __name__ == "__main__":
    run()
