"""
Local command handlers (no network access).

- run_drift_check: Report disagreement between the local descriptors
- run_set: Write an explicit version everywhere
- run_bump: Bump the manifest version and propagate it
"""

from versionsync.core.domain.enums import BumpKind
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.ports.config_provider import AppConfig

from ..exit_codes import ExitCode
from ..factory import build_engine
from ..logging import get_logger
from ..output import Console


__all__ = ["run_drift_check", "run_set", "run_bump"]

logger = get_logger("commands.local")


def run_drift_check(args, config: AppConfig, console: Console) -> int:
    """
    Compare the manifest and native descriptors.

    Returns:
        SUCCESS when in sync, DRIFT_DETECTED otherwise.
    """
    console.header("versionsync drift-check")
    report = build_engine(config).check_drift()
    logger.bind(operation="drift_check").info(f"In sync: {report.in_sync}")
    console.drift_report(report)
    return ExitCode.from_drift(report)


def run_set(args, config: AppConfig, console: Console) -> int:
    version = VersionTag.parse(args.version)

    console.header(f"versionsync set {version}")
    if config.sync.dry_run:
        console.dry_run_banner()

    result = build_engine(config).set_version(version)
    logger.bind(operation="set", version=str(version)).info(f"Finished in state {result.state.value}")
    console.reconciliation_result(result)
    return ExitCode.from_result(result)


def run_bump(args, config: AppConfig, console: Console) -> int:
    kind = BumpKind.from_string(args.kind) if args.kind else config.sync.bump_kind

    console.header(f"versionsync bump {kind.value}")
    if config.sync.dry_run:
        console.dry_run_banner()

    result = build_engine(config).bump(kind)
    logger.bind(operation="bump", bump=kind.value).info(
        f"Finished in state {result.state.value}", extra={"chosen": str(result.chosen)}
    )
    console.reconciliation_result(result)
    return ExitCode.from_result(result)
