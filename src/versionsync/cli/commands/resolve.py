"""
Resolve command handlers.

- run_resolve: Decide the next version under a policy and write it everywhere
- run_auto_fix: Unify drifted descriptors and clear store conflicts
"""

from versionsync.core.domain.enums import BumpKind
from versionsync.core.domain.value_objects import SyncPolicy
from versionsync.core.ports.config_provider import AppConfig

from ..exit_codes import ExitCode
from ..factory import build_engine
from ..logging import get_logger
from ..output import Console


__all__ = ["run_resolve", "run_auto_fix"]

logger = get_logger("commands.resolve")


def run_resolve(args, config: AppConfig, console: Console) -> int:
    """
    Run a policy-driven reconciliation.

    ``--policy STRATEGY:BUMP`` replaces the configured strategy and bump
    kind; ``--auto-increment`` and ``--strict-stores`` are already folded
    into the configuration as overrides.

    Returns:
        Exit code.
    """
    if args.policy:
        policy = SyncPolicy.from_string(
            args.policy,
            auto_increment=config.sync.auto_increment,
            arbitrate=config.sync.arbitrate,
        )
    else:
        policy = config.sync.policy()

    console.header(f"versionsync resolve ({policy})")
    if config.sync.dry_run:
        console.dry_run_banner()

    engine = build_engine(config)
    result = engine.resolve(policy)
    logger.bind(operation="resolve", policy=str(policy)).info(
        f"Finished in state {result.state.value}", extra={"chosen": str(result.chosen)}
    )

    console.reconciliation_result(result)
    return ExitCode.from_result(result)


def run_auto_fix(args, config: AppConfig, console: Console) -> int:
    """
    Converge every descriptor on one version that no store has published.

    Returns:
        Exit code.
    """
    bump_kind = BumpKind.from_string(args.bump) if args.bump else config.sync.bump_kind

    console.header("versionsync auto-fix")
    if config.sync.dry_run:
        console.dry_run_banner()

    engine = build_engine(config)
    result = engine.auto_fix(bump_kind)
    logger.bind(operation="auto_fix", bump=bump_kind.value).info(
        f"Finished in state {result.state.value}", extra={"chosen": str(result.chosen)}
    )

    console.reconciliation_result(result)
    return ExitCode.from_result(result)
