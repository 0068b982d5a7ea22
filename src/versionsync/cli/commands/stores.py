"""
Store command handler.

- run_stores: Show what each store currently reports, writing nothing
"""

from versionsync.core.ports.config_provider import AppConfig

from ..exit_codes import ExitCode
from ..factory import build_engine
from ..logging import get_logger
from ..output import Console


__all__ = ["run_stores"]

logger = get_logger("commands.stores")


def run_stores(args, config: AppConfig, console: Console) -> int:
    """
    Query both stores and report the highest published version.

    Returns:
        SUCCESS if any store answered, NO_STORE_VERSION otherwise.
    """
    console.header("versionsync stores")
    result = build_engine(config).check_stores()
    logger.bind(operation="stores").info(f"Highest store version: {result.chosen}")
    console.reconciliation_result(result)

    if result.interrupted:
        return ExitCode.CANCELLED
    return ExitCode.SUCCESS if result.chosen is not None else ExitCode.NO_STORE_VERSION
