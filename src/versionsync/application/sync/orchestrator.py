"""
Reconciliation Engine - Decides the next safe version and writes it everywhere.

This is the main entry point for version operations.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from versionsync.core.domain.entities import ObservedVersion, WriteOutcome
from versionsync.core.domain.enums import (
    BumpKind,
    EngineState,
    SyncStrategy,
    Target,
    VersionSource,
    WriteStatus,
)
from versionsync.core.domain.value_objects import SyncPolicy, VersionTag, max_version
from versionsync.core.exceptions import (
    ConflictError,
    MissingConfigError,
    NoStoreVersionError,
    ReconciliationError,
    SigningKeyError,
    VersionSyncError,
)
from versionsync.core.ports.descriptor import VersionDescriptorPort
from versionsync.core.ports.store_provider import StoreProviderPort

from .drift import DriftChecker, DriftReport
from .parallel import DEFAULT_CONCURRENCY, gather_store_versions


if TYPE_CHECKING:
    from versionsync.adapters.cache.file_cache import ObservedVersionCache

    from .lock import ProjectLock


STORE_SOURCES = (VersionSource.STORE_A, VersionSource.STORE_B)


@dataclass
class ReconciliationResult:
    """
    Result of one engine operation.

    Every target the operation was meant to write appears in ``writes``,
    so a target that did not reach ``chosen`` is always reported.

    Attributes:
        operation: Which engine operation produced this result.
        chosen: The decided version (None if the run stopped before deciding).
        source: Where the chosen version came from.
        state: Terminal engine state.
        policy: The policy applied, for policy-driven operations.
        baseline: The local version the decision compared against.
        observed: Every version read during gathering, by source.
        writes: Per-target write outcome.
        dry_run: Whether writing was skipped on purpose.
        interrupted: Whether an interrupt cut the run short.
        warnings: Non-fatal issues worth showing to the user.
    """

    operation: str = "resolve"
    chosen: VersionTag | None = None
    source: VersionSource | None = None
    state: EngineState = EngineState.IDLE
    policy: SyncPolicy | None = None
    baseline: ObservedVersion | None = None
    observed: dict[VersionSource, ObservedVersion] = field(default_factory=dict)
    writes: dict[Target, WriteOutcome] = field(default_factory=dict)
    dry_run: bool = False
    interrupted: bool = False
    warnings: list[str] = field(default_factory=list)
    drift: DriftReport | None = None

    def add_warning(self, warning: str) -> None:
        """
        Add a warning message (does not affect the final state).

        Args:
            warning: Warning message to add.
        """
        self.warnings.append(warning)

    @property
    def success(self) -> bool:
        return self.state is EngineState.DONE

    @property
    def failed_writes(self) -> list[WriteOutcome]:
        return [w for w in self.writes.values() if w.failed]

    @property
    def written_targets(self) -> list[Target]:
        return [t for t, w in self.writes.items() if w.status is WriteStatus.WRITTEN]

    @property
    def store_versions(self) -> dict[VersionSource, VersionTag]:
        return {
            s: o.version for s, o in self.observed.items() if s.is_store and o.version is not None
        }

    def summary(self) -> str:
        """
        Generate a human-readable summary of the result.

        Returns:
            Multi-line summary string.
        """
        lines = []

        if self.dry_run:
            lines.append("DRY RUN - No files changed")

        if self.interrupted:
            lines.append("✗ Interrupted")
        elif self.success:
            lines.append(f"✓ {self.operation} completed: {self.chosen}")
        else:
            lines.append(f"⚠ {self.operation} completed with errors ({len(self.failed_writes)} failed)")

        for source, observation in self.observed.items():
            value = observation.version if observation.version else f"unknown ({observation.error})"
            lines.append(f"  {source.display_name}: {value}")

        for target, outcome in self.writes.items():
            suffix = f" - {outcome.message}" if outcome.message else ""
            lines.append(f"  {target.value}: {outcome.status.value}{suffix}")

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  • {warning}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "operation": self.operation,
            "state": self.state.value,
            "chosen": str(self.chosen) if self.chosen else None,
            "source": self.source.value if self.source else None,
            "policy": self.policy.to_dict() if self.policy else None,
            "baseline": self.baseline.to_dict() if self.baseline else None,
            "observed": {s.value: o.to_dict() for s, o in self.observed.items()},
            "writes": {t.value: w.to_dict() for t, w in self.writes.items()},
            "dry_run": self.dry_run,
            "interrupted": self.interrupted,
            "warnings": list(self.warnings),
        }
        if self.drift is not None:
            data["drift"] = self.drift.to_dict()
        return data


class ReconciliationEngine:
    """
    Reconciles local descriptors with the remote stores.

    States:
        IDLE -> GATHERING -> DECIDING -> WRITING -> DONE | PARTIALLY_FAILED

    Reads are all finished and the version decided before any file is
    touched. Writes are sequential and independent per target.
    """

    def __init__(
        self,
        manifest: VersionDescriptorPort,
        descriptors: Sequence[VersionDescriptorPort],
        providers: Sequence[StoreProviderPort],
        cache: ObservedVersionCache | None = None,
        lock: ProjectLock | None = None,
        fallback: VersionTag | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        dry_run: bool = False,
    ):
        """
        Initialize the engine.

        Args:
            manifest: The canonical manifest (its absence is fatal)
            descriptors: Native platform descriptors
            providers: Remote store providers
            cache: Optional last-observed-versions cache
            lock: Optional project lock held for the duration of each write operation
            fallback: Version used when no store reports one
            concurrency: Max store lookups in flight
            dry_run: Decide but do not write
        """
        self.manifest = manifest
        self.descriptors = list(descriptors)
        self.providers = list(providers)
        self.cache = cache
        self.lock = lock
        self.fallback = fallback
        self.concurrency = concurrency
        self.dry_run = dry_run
        self.logger = logging.getLogger("ReconciliationEngine")

        self._cancel = threading.Event()
        self.state = EngineState.IDLE

    # -------------------------------------------------------------------------
    # Main Entry Points
    # -------------------------------------------------------------------------

    @property
    def targets(self) -> list[VersionDescriptorPort]:
        return [self.manifest, *self.descriptors]

    def cancel(self) -> None:
        """Request an interrupt; honoured at the next phase or write boundary."""
        self._cancel.set()
        for provider in self.providers:
            provider.cancel()

    def resolve(
        self,
        policy: SyncPolicy,
        baseline: ObservedVersion | None = None,
        fallback: VersionTag | None = None,
        operation: str = "resolve",
    ) -> ReconciliationResult:
        """
        Decide the next version under a policy and write it to every target.

        Args:
            policy: Strategy and bump rules for this run
            baseline: Local version to compare against (defaults to the manifest)
            fallback: Overrides the engine's configured fallback
            operation: Name reported in the result

        Returns:
            ReconciliationResult with the decision and per-target outcomes

        Raises:
            DescriptorNotFoundError: If the manifest is missing
            VersionNotFoundError, ParseError: If the manifest version is unusable
            LockError: If another run holds the project lock
            NoStoreVersionError: Store-only policy and no store answered
            SigningKeyError: Store-only policy and the signing key is unusable
            ConflictError: Stores disagree and arbitration is off
        """
        self._cancel.clear()
        result = ReconciliationResult(operation=operation, policy=policy, dry_run=self.dry_run)
        self.logger.info(f"{operation}: policy {policy}")

        with self._locked():
            self._transition(result, EngineState.GATHERING)
            manifest_version = self._read_manifest(result)
            self._read_descriptors(result)
            result.baseline = baseline or ObservedVersion.known(VersionSource.MANIFEST, manifest_version)

            if policy.strategy.uses_stores:
                try:
                    result.observed.update(self._gather_stores())
                except KeyboardInterrupt:
                    self.logger.warning("Interrupted while querying stores")
                    return self._abort(result)

            if self._cancel.is_set():
                return self._abort(result)

            self._transition(result, EngineState.DECIDING)
            effective_fallback = fallback if fallback is not None else self.fallback
            result.chosen, result.source = self._decide(policy, result, effective_fallback)
            self.logger.info(f"Chosen version {result.chosen} ({result.source.display_name})")

            self._write_phase(result, result.chosen)

        return result

    def check_drift(self) -> DriftReport:
        """Compare the local descriptors. Never writes, never touches the network."""
        return DriftChecker(self.targets).check()

    def auto_fix(self, bump_kind: BumpKind = BumpKind.BUILD) -> ReconciliationResult:
        """
        Unify drifted descriptors and clear store conflicts in one write phase.

        The local maximum becomes the baseline, so no descriptor ever moves
        backwards, and a configured fallback below it is ignored.
        """
        report = self.check_drift()
        local_max = report.local_max
        baseline = ObservedVersion.known(VersionSource.LOCAL_MAX, local_max) if local_max else None
        fallback = max_version([self.fallback, local_max])

        policy = SyncPolicy(strategy=SyncStrategy.STORE_OR_FALLBACK, bump_kind=bump_kind)
        result = self.resolve(policy, baseline=baseline, fallback=fallback, operation="auto_fix")
        result.drift = report
        if not report.in_sync:
            result.add_warning(f"Local descriptors had drifted; converged to {result.chosen}")
        return result

    def set_version(self, version: VersionTag) -> ReconciliationResult:
        """Write an explicit version to every target."""
        self._cancel.clear()
        result = ReconciliationResult(operation="set", dry_run=self.dry_run)
        with self._locked():
            self._transition(result, EngineState.GATHERING)
            result.observed[self.manifest.target.source] = self.manifest.observe()
            self._read_descriptors(result)
            self._transition(result, EngineState.DECIDING)
            result.chosen, result.source = version, VersionSource.EXPLICIT
            self._write_phase(result, version)
        return result

    def bump(self, kind: BumpKind = BumpKind.BUILD) -> ReconciliationResult:
        """Bump the manifest version locally and propagate it (no network)."""
        self._cancel.clear()
        result = ReconciliationResult(operation="bump", dry_run=self.dry_run)
        with self._locked():
            self._transition(result, EngineState.GATHERING)
            current = self._read_manifest(result)
            self._read_descriptors(result)
            result.baseline = ObservedVersion.known(VersionSource.MANIFEST, current)
            self._transition(result, EngineState.DECIDING)
            result.chosen, result.source = current.bump(kind), VersionSource.MANIFEST
            self._write_phase(result, result.chosen)
        return result

    def check_stores(self) -> ReconciliationResult:
        """Query the stores only and report the highest published version."""
        self._cancel.clear()
        result = ReconciliationResult(operation="stores", dry_run=True)
        self._transition(result, EngineState.GATHERING)
        try:
            result.observed.update(self._gather_stores())
        except KeyboardInterrupt:
            result.interrupted = True
            self._transition(result, EngineState.PARTIALLY_FAILED)
            return result

        best = self._best_store(result)
        if best is not None:
            result.source, result.chosen = best
        else:
            result.add_warning("No store reported a version")
        self._transition(result, EngineState.DONE)
        return result

    # -------------------------------------------------------------------------
    # Gathering
    # -------------------------------------------------------------------------

    def _read_manifest(self, result: ReconciliationResult) -> VersionTag:
        """Read the manifest; every failure here is fatal."""
        version = self.manifest.read()
        source = self.manifest.target.source
        result.observed[source] = ObservedVersion.known(source, version)
        return version

    def _read_descriptors(self, result: ReconciliationResult) -> None:
        """Read the native descriptors; failures are recorded, not raised."""
        for descriptor in self.descriptors:
            observation = descriptor.observe()
            result.observed[descriptor.target.source] = observation
            if not observation.is_known:
                self.logger.debug(f"{descriptor.name}: {observation.error}")

    def _gather_stores(self) -> dict[VersionSource, ObservedVersion]:
        observed: dict[VersionSource, ObservedVersion] = {}

        if self.cache is not None:
            fresh = self.cache.get_many(p.source for p in self.providers)
            for source in fresh:
                self.logger.info(f"Using cached {source.display_name} version {fresh[source].version}")
            observed.update(fresh)

        pending = []
        for provider in self.providers:
            if provider.source in observed:
                continue
            if not provider.is_configured:
                self.logger.info(f"{provider.name} is not configured; skipping")
                observed[provider.source] = ObservedVersion.unknown(
                    provider.source,
                    error=MissingConfigError(provider.name, f"{provider.name} is not configured"),
                    confidence=provider.confidence,
                    detail="not configured",
                )
                continue
            pending.append(provider)

        if pending:
            gathered = gather_store_versions(pending, concurrency=self.concurrency)
            observed.update(gathered.observed)

        if self.cache is not None:
            self.cache.save(observed.values())

        # Keep provider order stable for reports
        return {p.source: observed[p.source] for p in self.providers if p.source in observed}

    # -------------------------------------------------------------------------
    # Deciding
    # -------------------------------------------------------------------------

    def _best_store(self, result: ReconciliationResult) -> tuple[VersionSource, VersionTag] | None:
        best: tuple[VersionSource, VersionTag] | None = None
        for source in STORE_SOURCES:
            observation = result.observed.get(source)
            if observation is None or observation.version is None:
                continue
            if best is None or observation.version > best[1]:
                best = (source, observation.version)
        return best

    def _decide(
        self,
        policy: SyncPolicy,
        result: ReconciliationResult,
        fallback: VersionTag | None,
    ) -> tuple[VersionTag, VersionSource]:
        baseline = result.baseline
        if baseline is None or baseline.version is None:
            raise ReconciliationError("Cannot decide without a known baseline version")

        if policy.strategy is SyncStrategy.STORE_ONLY:
            store_a = result.observed.get(VersionSource.STORE_A)
            if store_a is not None and isinstance(store_a.error, SigningKeyError):
                raise store_a.error
            if not result.store_versions:
                reasons = ", ".join(
                    f"{s.display_name}: {o.error}" for s, o in result.observed.items() if s.is_store
                )
                raise NoStoreVersionError(f"No store reported a version ({reasons or 'no stores configured'})")

        best = self._best_store(result) if policy.strategy.uses_stores else None

        if best is None:
            # Fallback branch
            if policy.strategy is SyncStrategy.STORE_OR_FALLBACK:
                result.add_warning("No store reported a version; using the fallback")
            if fallback is not None:
                base, source = fallback, VersionSource.FALLBACK
            else:
                base, source = baseline.version, baseline.source
            if policy.auto_increment:
                return base.bump(policy.bump_kind), source
            return base, source

        store_versions = result.store_versions
        if not policy.arbitrate and len(set(store_versions.values())) > 1:
            raise ConflictError(
                "Stores disagree on the published version: "
                + ", ".join(f"{s.display_name}={v}" for s, v in store_versions.items()),
                candidates={s.value: str(v) for s, v in store_versions.items()},
            )

        best_source, best_version = best
        if baseline.version > best_version:
            self.logger.info(
                f"{baseline.source.display_name} {baseline.version} already exceeds "
                f"{best_source.display_name} {best_version}; keeping it"
            )
            return baseline.version, baseline.source

        return best_version.bump(policy.bump_kind), best_source

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def _write_phase(self, result: ReconciliationResult, version: VersionTag) -> None:
        self._transition(result, EngineState.WRITING)

        if self.dry_run:
            for target in self.targets:
                result.writes[target.target] = WriteOutcome(
                    target.target, WriteStatus.SKIPPED, target.paths(), f"dry run: would write {version}"
                )
            self._transition(result, EngineState.DONE)
            return

        with self._deferred_interrupts():
            for target in self.targets:
                if self._cancel.is_set():
                    result.interrupted = True
                    result.writes[target.target] = WriteOutcome(
                        target.target, WriteStatus.SKIPPED, target.paths(), "interrupted before writing"
                    )
                    continue
                result.writes[target.target] = self._write_target(target, version)

        failed = result.failed_writes
        for outcome in failed:
            self.logger.error(f"Failed to write {outcome.target.value}: {outcome.message}")

        if failed or result.interrupted:
            self._transition(result, EngineState.PARTIALLY_FAILED)
        else:
            self._transition(result, EngineState.DONE)

    def _write_target(self, target: VersionDescriptorPort, version: VersionTag) -> WriteOutcome:
        try:
            outcome = target.write(version)
        except (VersionSyncError, OSError) as e:
            return WriteOutcome(target.target, WriteStatus.FAILED, target.paths(), str(e))
        self.logger.debug(f"{target.name}: {outcome.status.value}")
        return outcome

    def _abort(self, result: ReconciliationResult) -> ReconciliationResult:
        """Stop before writing: nothing is touched and every target is skipped."""
        result.interrupted = True
        for target in self.targets:
            result.writes[target.target] = WriteOutcome(
                target.target, WriteStatus.SKIPPED, target.paths(), "interrupted before writing"
            )
        self._transition(result, EngineState.PARTIALLY_FAILED)
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _transition(self, result: ReconciliationResult, state: EngineState) -> None:
        self.logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        result.state = state

    def _locked(self) -> Any:
        return self.lock if self.lock is not None else nullcontext()

    @contextmanager
    def _deferred_interrupts(self) -> Iterator[None]:
        """Turn SIGINT into a cancel request so an in-flight write can finish."""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = signal.getsignal(signal.SIGINT)

        def handler(signum: int, frame: Any) -> None:
            self.logger.warning("Interrupt received; finishing the current write")
            self._cancel.set()

        signal.signal(signal.SIGINT, handler)
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, previous if previous is not None else signal.default_int_handler)
