"""
Output - Console output formatting.

Provides pretty-printed output with colors and formatting, a one-line
summary in quiet mode and structured JSON for ``--json``.
"""

from __future__ import annotations

import json
import sys
from typing import Any

from versionsync.application.sync import DriftReport, ReconciliationResult
from versionsync.core.domain.enums import Confidence, WriteStatus
from versionsync.core.exceptions import (
    ConflictError,
    LockError,
    SigningKeyError,
    VersionSyncError,
)


class Colors:
    """
    ANSI color codes for terminal output.

    Attributes:
        RESET: Reset all formatting to default.
        BOLD: Make text bold.
        DIM: Make text dimmed/faded.
        RED, GREEN, YELLOW, BLUE, CYAN: Text colors.
        BG_YELLOW: Yellow background, used for the dry-run banner.
    """

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"

    BG_YELLOW = "\033[43m"


class Symbols:
    """Unicode symbols for terminal output."""

    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    DOT = "•"
    WARN = "⚠"
    INFO = "ℹ"
    GEAR = "⚙"

    BOX_H = "─"


# Hints printed under fatal errors
_ERROR_HINTS: tuple[tuple[type[BaseException], str], ...] = (
    (SigningKeyError, "Check APP_STORE_KEY_PATH or place the key at ios/private_keys/AuthKey_<KEY_ID>.p8"),
    (LockError, "Another versionsync run is in progress; retry when it finishes"),
    (ConflictError, "Drop --strict-stores to take the highest store version"),
)

_WRITE_STATUS_LABELS = {
    WriteStatus.WRITTEN: "ok",
    WriteStatus.UNCHANGED: "unchanged",
    WriteStatus.SKIPPED: "skip",
    WriteStatus.FAILED: "fail",
}


class Console:
    """
    Console output helper with colors and formatting.

    Attributes:
        color: Whether to use ANSI color codes.
        verbose: Whether to print debug messages.
        quiet: Whether to suppress most output (for CI/scripting).
        json_mode: Whether to output JSON format for programmatic use.
    """

    def __init__(
        self,
        color: bool = True,
        verbose: bool = False,
        quiet: bool = False,
        json_mode: bool = False,
    ):
        """
        Initialize the console output helper.

        Args:
            color: Enable colored output. Automatically disabled if stdout is not a TTY.
            verbose: Enable verbose debug output.
            quiet: Suppress most output, only show errors and final summary.
            json_mode: Output JSON format instead of text.
        """
        self.json_mode = json_mode
        self.color = color and sys.stdout.isatty() and not json_mode
        self.verbose = verbose
        self.quiet = quiet or json_mode  # JSON mode implies quiet for intermediate output

        # JSON mode collects errors for the final document
        self._json_errors: list[str] = []

        if self.quiet:
            self.verbose = False

    def _c(self, text: str, *codes: str) -> str:
        """Apply color codes to text (plain text when color is disabled)."""
        if not self.color:
            return text
        return "".join(codes) + text + Colors.RESET

    def print(self, text: str = "", force: bool = False) -> None:
        """
        Print text to stdout.

        Args:
            text: Text to print. Defaults to empty string for blank line.
            force: Print even in quiet mode.
        """
        if self.quiet and not force:
            return
        print(text)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def header(self, text: str) -> None:
        if self.quiet:
            return
        width = max(len(text) + 4, 50)
        border = self._c(Symbols.BOX_H * width, Colors.CYAN) if self.color else "-" * width

        self.print()
        self.print(border)
        self.print(self._c(f"  {text}", Colors.BOLD, Colors.CYAN))
        self.print(border)

    def section(self, text: str) -> None:
        if self.quiet:
            return
        self.print()
        self.print(self._c(f"{Symbols.ARROW} {text}", Colors.BOLD, Colors.BLUE))

    def success(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.CHECK} {text}", Colors.GREEN))

    def error(self, text: str) -> None:
        """
        Print an error message with cross symbol.

        Always prints (to stderr), even in quiet mode. Collected in JSON mode.
        """
        if self.json_mode:
            self._json_errors.append(text)
            return
        print(self._c(f"  {Symbols.CROSS} {text}", Colors.RED), file=sys.stderr)

    def error_from_exception(self, exc: BaseException) -> None:
        """Print a fatal error with a hint for the common cases."""
        self.error(str(exc))
        if self.json_mode:
            return
        for exc_type, hint in _ERROR_HINTS:
            if isinstance(exc, exc_type):
                print(self._c(f"    {hint}", Colors.DIM), file=sys.stderr)
                break
        if self.verbose and isinstance(exc, VersionSyncError) and exc.cause is not None:
            print(self._c(f"    cause: {exc.cause!r}", Colors.DIM), file=sys.stderr)

    def config_errors(self, errors: list[str]) -> None:
        """Print configuration errors (always, even in quiet mode)."""
        if self.json_mode:
            self._json_errors.extend(errors)
            return
        print(self._c(f"  {Symbols.CROSS} Configuration is invalid:", Colors.RED), file=sys.stderr)
        for error in errors:
            print(f"    {Symbols.DOT} {error}", file=sys.stderr)

    def warning(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.WARN} {text}", Colors.YELLOW))

    def info(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.INFO} {text}", Colors.CYAN))

    def detail(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"    {text}", Colors.DIM))

    def debug(self, text: str) -> None:
        """Print debug message (only visible in verbose mode)."""
        if self.verbose:
            self.print(self._c(f"  [DEBUG] {text}", Colors.DIM))

    def item(self, text: str, status: str | None = None) -> None:
        """
        Print a list item with optional status indicator.

        Args:
            text: Item text to display.
            status: Optional status string. Special values:
                - "ok": Shows green checkmark
                - "skip": Shows yellow SKIP label
                - "fail": Shows red cross
                - Any other string: Shows dimmed label
        """
        if self.quiet:
            return
        status_str = ""
        if status == "ok":
            status_str = self._c(f" [{Symbols.CHECK}]", Colors.GREEN)
        elif status == "skip":
            status_str = self._c(" [SKIP]", Colors.YELLOW)
        elif status == "fail":
            status_str = self._c(f" [{Symbols.CROSS}]", Colors.RED)
        elif status:
            status_str = self._c(f" [{status}]", Colors.DIM)

        self.print(f"    {Symbols.DOT} {text}{status_str}")

    def table(self, headers: list[str], rows: list[list[str]]) -> None:
        """
        Print a formatted table with headers.

        Column widths are calculated from the content.
        """
        if self.quiet:
            return
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        header_line = "  " + "  ".join(
            self._c(h.ljust(widths[i]), Colors.BOLD) for i, h in enumerate(headers)
        )
        self.print(header_line)
        self.print("  " + "  ".join("-" * w for w in widths))

        for row in rows:
            row_line = "  " + "  ".join(
                str(cell).ljust(widths[i]) if i < len(widths) else str(cell)
                for i, cell in enumerate(row)
            )
            self.print(row_line)

    def dry_run_banner(self) -> None:
        if self.quiet:
            return
        self.print()
        banner = f"  {Symbols.GEAR} DRY-RUN MODE - No files will be changed"
        if self.color:
            self.print(f"{Colors.BG_YELLOW}{Colors.BOLD}{banner}{Colors.RESET}")
        else:
            self.print(f"*** {banner} ***")

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def emit_json(self, data: dict[str, Any]) -> None:
        """Print a JSON document on stdout, including any collected errors."""
        if self._json_errors:
            data = {**data, "errors": [*data.get("errors", []), *self._json_errors]}
        print(json.dumps(data, indent=2))

    def reconciliation_result(self, result: ReconciliationResult) -> None:
        """
        Print a formatted reconciliation result.

        In JSON mode, outputs ``result.to_dict()``.
        In quiet mode, prints a single line summary suitable for CI/scripting.
        """
        if self.json_mode:
            self.emit_json(result.to_dict())
            return

        if self.quiet:
            parts = [
                f"status={result.state.value}",
                f"operation={result.operation}",
                f"version={result.chosen if result.chosen else '-'}",
                f"source={result.source.value if result.source else '-'}",
                f"mode={'dry-run' if result.dry_run else 'executed'}",
            ]
            if result.failed_writes:
                parts.append(f"failed={len(result.failed_writes)}")
            if result.interrupted:
                parts.append("interrupted=true")
            print(" ".join(parts))
            for outcome in result.failed_writes:
                print(f"ERROR: {outcome.target.value}: {outcome.message}", file=sys.stderr)
            return

        if result.observed:
            self.section("Observed versions")
            rows = []
            for source, observation in result.observed.items():
                if observation.version is not None:
                    value = str(observation.version)
                else:
                    value = f"unknown ({observation.error})" if observation.error else "unknown"
                notes = []
                if observation.confidence is Confidence.LOW:
                    notes.append("low confidence")
                if observation.detail:
                    notes.append(observation.detail)
                rows.append([source.display_name, value, ", ".join(notes)])
            self.table(["Source", "Version", "Notes"], rows)

        if result.chosen is not None:
            self.section("Decision")
            source = result.source.display_name if result.source else "unknown"
            self.print(f"  {self._c(str(result.chosen), Colors.BOLD)} (from {source})")
            if result.baseline is not None and result.baseline.version is not None:
                self.detail(f"baseline: {result.baseline.version} ({result.baseline.source.display_name})")
            if result.policy is not None:
                self.detail(f"policy: {result.policy}")

        if result.writes:
            self.section("Targets")
            for target, outcome in result.writes.items():
                label = _WRITE_STATUS_LABELS[outcome.status]
                text = target.value if not outcome.message else f"{target.value}: {outcome.message}"
                self.item(text, label)

        if result.warnings:
            self.print()
            self.warning(f"{len(result.warnings)} warning(s):")
            for w in result.warnings:
                self.detail(w)

        self.print()
        if result.interrupted:
            self.error(f"{result.operation} interrupted; remaining targets were skipped")
        elif result.success:
            if result.dry_run and result.operation != "stores":
                self.success(f"{result.operation} decided {result.chosen} (dry run, nothing written)")
            else:
                self.success(f"{result.operation} completed")
        else:
            self.error(f"{result.operation} completed with {len(result.failed_writes)} failed target(s)")

    def drift_report(self, report: DriftReport) -> None:
        """Print the local descriptor comparison."""
        if self.json_mode:
            self.emit_json(report.to_dict())
            return

        if self.quiet:
            status = "in_sync" if report.in_sync else "drift"
            versions = " ".join(
                f"{t.value}={o.version if o.version else 'unknown'}" for t, o in report.observed.items()
            )
            print(f"status={status} {versions}")
            return

        self.section("Local descriptors")
        divergent = set(report.divergent_targets())
        for target, observation in report.observed.items():
            if observation.version is None:
                self.item(f"{target.value}: unknown ({observation.error})", "fail")
            elif target in divergent:
                self.item(f"{target.value}: {observation.version}", f"behind {report.local_max}")
            else:
                self.item(f"{target.value}: {observation.version}", "ok")

        self.print()
        if report.in_sync:
            self.success(f"In sync at {report.local_max}")
        else:
            self.warning("Version drift detected; run 'versionsync auto-fix' to unify")
