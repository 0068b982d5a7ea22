"""
Tests for CLI exit codes.
"""

import pytest

from versionsync.application.sync import DriftReport, ReconciliationResult
from versionsync.cli.exit_codes import ExitCode
from versionsync.core.domain import BumpKind, EngineState, ObservedVersion, Target, VersionTag
from versionsync.core.exceptions import (
    AuthenticationError,
    ConfigFileError,
    ConflictError,
    DescriptorNotFoundError,
    LockError,
    MissingConfigError,
    NoStoreVersionError,
    ParseError,
    ProviderTimeoutError,
    SigningKeyError,
    VersionNotFoundError,
    VersionSyncError,
    WriteError,
)


class TestExitCodeValues:
    """Exit codes are part of the CLI contract."""

    def test_stable_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.CONFIG_ERROR == 2
        assert ExitCode.DRIFT_DETECTED == 7
        assert ExitCode.SIGINT == 130

    def test_every_code_described(self):
        for code in ExitCode:
            assert code.description


class TestFromException:
    """Tests for ExitCode.from_exception."""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (KeyboardInterrupt(), ExitCode.SIGINT),
            (DescriptorNotFoundError("no pubspec"), ExitCode.FILE_NOT_FOUND),
            (VersionNotFoundError("no version line"), ExitCode.VALIDATION_ERROR),
            (ParseError("bad", value="1.2"), ExitCode.VALIDATION_ERROR),
            (SigningKeyError("bad key"), ExitCode.CONFIG_ERROR),
            (MissingConfigError("app_store.key_id"), ExitCode.CONFIG_ERROR),
            (ConfigFileError("bad yaml"), ExitCode.CONFIG_ERROR),
            (LockError("held"), ExitCode.LOCK_ERROR),
            (NoStoreVersionError("none"), ExitCode.NO_STORE_VERSION),
            (ConflictError("disagree"), ExitCode.CONFLICT),
            (ProviderTimeoutError("slow"), ExitCode.CONNECTION_ERROR),
            (AuthenticationError("401"), ExitCode.CONNECTION_ERROR),
            (FileNotFoundError("x"), ExitCode.FILE_NOT_FOUND),
            (WriteError("read-only"), ExitCode.ERROR),
            (VersionSyncError("other"), ExitCode.ERROR),
            (RuntimeError("other"), ExitCode.ERROR),
        ],
    )
    def test_mapping(self, exc, expected):
        assert ExitCode.from_exception(exc) is expected


class TestFromOutcome:
    """Tests for result- and report-based exit codes."""

    def test_from_result(self):
        assert ExitCode.from_result(ReconciliationResult(state=EngineState.DONE)) is ExitCode.SUCCESS
        assert ExitCode.from_result(ReconciliationResult(state=EngineState.PARTIALLY_FAILED)) is (
            ExitCode.PARTIAL_SUCCESS
        )

    def test_interrupted_wins(self):
        result = ReconciliationResult(state=EngineState.PARTIALLY_FAILED, interrupted=True)
        assert ExitCode.from_result(result) is ExitCode.CANCELLED

    def test_from_drift(self):
        tag = VersionTag(1, 0, 0, 1)
        in_sync = DriftReport(observed={Target.MANIFEST: ObservedVersion.known(Target.MANIFEST.source, tag)})
        drifted = DriftReport(
            observed={
                Target.MANIFEST: ObservedVersion.known(Target.MANIFEST.source, tag),
                Target.IOS_DESCRIPTOR: ObservedVersion.known(Target.IOS_DESCRIPTOR.source, tag.bump(BumpKind.BUILD)),
            }
        )
        assert ExitCode.from_drift(in_sync) is ExitCode.SUCCESS
        assert ExitCode.from_drift(drifted) is ExitCode.DRIFT_DETECTED
