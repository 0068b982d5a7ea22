"""
Tests for CLI output module.
"""

import json

import pytest

from versionsync.application.sync import DriftReport, ReconciliationResult
from versionsync.cli.output import Colors, Console, Symbols
from versionsync.core.domain import (
    Confidence,
    EngineState,
    ObservedVersion,
    SyncPolicy,
    Target,
    VersionSource,
    VersionTag,
    WriteOutcome,
    WriteStatus,
)
from versionsync.core.exceptions import LockError, NotFoundError, SigningKeyError


def make_result(**overrides) -> ReconciliationResult:
    chosen = VersionTag(1, 0, 0, 8)
    fields = dict(
        operation="resolve",
        chosen=chosen,
        source=VersionSource.STORE_A,
        state=EngineState.DONE,
        policy=SyncPolicy(),
        baseline=ObservedVersion.known(VersionSource.MANIFEST, VersionTag(1, 0, 0, 5)),
        observed={
            VersionSource.MANIFEST: ObservedVersion.known(VersionSource.MANIFEST, VersionTag(1, 0, 0, 5)),
            VersionSource.STORE_A: ObservedVersion.known(VersionSource.STORE_A, VersionTag(1, 0, 0, 7)),
            VersionSource.STORE_B: ObservedVersion.unknown(
                VersionSource.STORE_B, error=NotFoundError("no listing"), confidence=Confidence.LOW
            ),
        },
        writes={
            Target.MANIFEST: WriteOutcome(Target.MANIFEST, WriteStatus.WRITTEN),
            Target.ANDROID_DESCRIPTOR: WriteOutcome(Target.ANDROID_DESCRIPTOR, WriteStatus.WRITTEN),
            Target.IOS_DESCRIPTOR: WriteOutcome(Target.IOS_DESCRIPTOR, WriteStatus.SKIPPED, message="placeholder"),
        },
    )
    fields.update(overrides)
    return ReconciliationResult(**fields)


def drifted_report() -> DriftReport:
    return DriftReport(
        observed={
            Target.MANIFEST: ObservedVersion.known(VersionSource.MANIFEST, VersionTag(1, 3, 0, 4)),
            Target.IOS_DESCRIPTOR: ObservedVersion.known(VersionSource.IOS_DESCRIPTOR, VersionTag(1, 3, 0, 6)),
        }
    )


# =============================================================================
# Console basics
# =============================================================================


class TestConsole:
    """Tests for Console message helpers."""

    def test_plain_when_not_tty(self, capsys):
        console = Console(color=True)
        console.success("done")
        assert capsys.readouterr().out == f"  {Symbols.CHECK} done\n"

    def test_colored(self, capsys):
        console = Console()
        console.color = True
        console.success("done")
        out = capsys.readouterr().out
        assert out.startswith(Colors.GREEN)
        assert Colors.RESET in out

    def test_quiet_suppresses_messages(self, capsys):
        console = Console(quiet=True)
        console.header("versionsync resolve")
        console.info("info")
        console.warning("careful")
        console.item("manifest", "ok")
        assert capsys.readouterr().out == ""

    def test_quiet_force_print(self, capsys):
        Console(quiet=True).print("summary", force=True)
        assert capsys.readouterr().out == "summary\n"

    def test_error_to_stderr_even_when_quiet(self, capsys):
        Console(quiet=True).error("broken")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "broken" in captured.err

    def test_debug_only_when_verbose(self, capsys):
        Console().debug("hidden")
        Console(verbose=True).debug("shown")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "[DEBUG] shown" in out

    def test_quiet_overrides_verbose(self):
        assert Console(verbose=True, quiet=True).verbose is False

    @pytest.mark.parametrize(
        "status,label",
        [("ok", f"[{Symbols.CHECK}]"), ("skip", "[SKIP]"), ("fail", f"[{Symbols.CROSS}]"), ("unchanged", "[unchanged]")],
    )
    def test_item_status(self, capsys, status, label):
        Console().item("android", status)
        assert capsys.readouterr().out.rstrip().endswith(label)

    def test_table(self, capsys):
        Console().table(["Source", "Version"], [["App Store", "1.0.0+7"], ["Play", "1.0.0+6"]])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "  Source     Version"
        assert lines[1] == "  ---------  -------"
        assert lines[2] == "  App Store  1.0.0+7"

    def test_dry_run_banner(self, capsys):
        Console().dry_run_banner()
        assert "DRY-RUN MODE" in capsys.readouterr().out

    def test_error_hint(self, capsys):
        Console().error_from_exception(LockError("held"))
        err = capsys.readouterr().err
        assert "held" in err
        assert "Another versionsync run" in err

    def test_verbose_shows_cause(self, capsys):
        Console(verbose=True).error_from_exception(SigningKeyError("bad key", cause=ValueError("not PEM")))
        err = capsys.readouterr().err
        assert "APP_STORE_KEY_PATH" in err
        assert "cause: ValueError('not PEM')" in err

    def test_config_errors(self, capsys):
        Console().config_errors(["first problem", "second problem"])
        err = capsys.readouterr().err
        assert "Configuration is invalid" in err
        assert f"{Symbols.DOT} second problem" in err


# =============================================================================
# JSON mode
# =============================================================================


class TestJsonMode:
    """Tests for --json output."""

    def test_json_mode_is_quiet(self, capsys):
        console = Console(json_mode=True)
        console.header("hidden")
        console.success("hidden")
        assert console.quiet
        assert not console.color
        assert capsys.readouterr().out == ""

    def test_errors_collected(self, capsys):
        console = Console(json_mode=True)
        console.error("first")
        console.config_errors(["second"])
        console.emit_json({"success": False, "errors": ["zero"]})

        captured = capsys.readouterr()
        assert captured.err == ""
        assert json.loads(captured.out) == {"success": False, "errors": ["zero", "first", "second"]}

    def test_result_document(self, capsys):
        Console(json_mode=True).reconciliation_result(make_result())
        data = json.loads(capsys.readouterr().out)
        assert data["chosen"] == "1.0.0+8"
        assert data["writes"]["ios"]["status"] == "skipped"

    def test_drift_document(self, capsys):
        Console(json_mode=True).drift_report(drifted_report())
        data = json.loads(capsys.readouterr().out)
        assert data["in_sync"] is False
        assert data["divergent"] == ["manifest"]


# =============================================================================
# Results
# =============================================================================


class TestReconciliationOutput:
    """Tests for Console.reconciliation_result."""

    def test_quiet_one_line(self, capsys):
        Console(quiet=True).reconciliation_result(make_result())
        assert capsys.readouterr().out == (
            "status=done operation=resolve version=1.0.0+8 source=app_store mode=executed\n"
        )

    def test_quiet_failures(self, capsys):
        result = make_result(
            state=EngineState.PARTIALLY_FAILED,
            writes={Target.IOS_DESCRIPTOR: WriteOutcome(Target.IOS_DESCRIPTOR, WriteStatus.FAILED, message="denied")},
        )
        Console(quiet=True).reconciliation_result(result)
        captured = capsys.readouterr()
        assert "failed=1" in captured.out
        assert "ERROR: ios: denied" in captured.err

    def test_full_output(self, capsys):
        Console().reconciliation_result(make_result(warnings=["Play listing is slow"]))
        out = capsys.readouterr().out

        assert "Observed versions" in out
        assert "unknown (no listing)" in out
        assert "low confidence" in out
        assert "1.0.0+8 (from App Store" in out
        assert "baseline: 1.0.0+5" in out
        assert "ios: placeholder [SKIP]" in out
        assert "1 warning(s)" in out
        assert "resolve completed" in out

    def test_dry_run_summary(self, capsys):
        Console().reconciliation_result(make_result(dry_run=True))
        assert "decided 1.0.0+8 (dry run, nothing written)" in capsys.readouterr().out

    def test_partial_failure_summary(self, capsys):
        result = make_result(
            state=EngineState.PARTIALLY_FAILED,
            writes={Target.IOS_DESCRIPTOR: WriteOutcome(Target.IOS_DESCRIPTOR, WriteStatus.FAILED, message="denied")},
        )
        Console().reconciliation_result(result)
        assert "1 failed target(s)" in capsys.readouterr().err

    def test_interrupted(self, capsys):
        Console().reconciliation_result(make_result(interrupted=True, state=EngineState.PARTIALLY_FAILED))
        assert "interrupted" in capsys.readouterr().err


class TestDriftOutput:
    """Tests for Console.drift_report."""

    def test_quiet(self, capsys):
        Console(quiet=True).drift_report(drifted_report())
        assert capsys.readouterr().out == "status=drift manifest=1.3.0+4 ios=1.3.0+6\n"

    def test_full(self, capsys):
        Console().drift_report(drifted_report())
        out = capsys.readouterr().out
        assert "manifest: 1.3.0+4 [behind 1.3.0+6]" in out
        assert "versionsync auto-fix" in out

    def test_in_sync(self, capsys):
        report = DriftReport(
            observed={Target.MANIFEST: ObservedVersion.known(VersionSource.MANIFEST, VersionTag(1, 0, 0, 1))}
        )
        Console().drift_report(report)
        assert "In sync at 1.0.0+1" in capsys.readouterr().out
