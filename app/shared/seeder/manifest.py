"""Run manifest: the auditable trace of a seeding run.

The manifest records which steps ran, in order, with their outcome. Steps
that never ran are absent. ``ManifestBuilder`` enforces the fixed step order
and freezes everything into an immutable ``Manifest`` on finalize.
"""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any

MANIFEST_SCHEMA_VERSION = "1.0.0"
COMMAND_NAME = "seed-unified-scenario"

MAX_SUMMARY_CHARS = 200
MAX_ERROR_MESSAGE_CHARS = 500
MAX_ARG_VALUE_CHARS = 1000
MAX_WARNINGS = 50
MAX_ERRORS = 10

REDACTED = "[REDACTED]"
_FORBIDDEN_ARG_KEYS = re.compile(
    r"SECRET|PASSWORD|TOKEN|(?:^|_)KEY(?:$|_)|COOKIE|^AUTHORIZATION$", re.IGNORECASE
)


class StepName(str, Enum):
    """Pipeline steps, declared in execution order."""

    SAFETY_CHECK = "SAFETY_CHECK"
    LOAD_SCENARIO = "LOAD_SCENARIO"
    VALIDATE_SCENARIO = "VALIDATE_SCENARIO"
    VALIDATE_INPUT = "VALIDATE_INPUT"
    EXECUTE = "EXECUTE"
    VERIFY = "VERIFY"


STEP_ORDER: tuple[StepName, ...] = tuple(StepName)


class StepStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class RunStatus(str, Enum):
    SUCCESS = "SUCCESS"
    BLOCKED = "BLOCKED"
    FAILED = "FAILED"


class ExitCode(IntEnum):
    """Process exit codes of a run. BLOCKED is a stable contract."""

    SUCCESS = 0
    FAILURE = 1
    SCENARIO_ERROR = 2
    BLOCKED = 78


class CommandClassification(str, Enum):
    READ = "READ"
    WRITE = "WRITE"


class ManifestStateError(RuntimeError):
    """Builder used out of order."""


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def redact_args(args: dict[str, Any]) -> dict[str, Any]:
    """Mask secret-looking keys and truncate long values."""
    redacted: dict[str, Any] = {}
    for key, value in args.items():
        if _FORBIDDEN_ARG_KEYS.search(key):
            redacted[key] = REDACTED
        elif isinstance(value, str):
            redacted[key] = _truncate(value, MAX_ARG_VALUE_CHARS)
        else:
            redacted[key] = value
    return redacted


@dataclass(frozen=True)
class StepError:
    """Error detail of a failed step."""

    code: str
    message: str
    is_recoverable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "is_recoverable": self.is_recoverable}


@dataclass(frozen=True)
class Step:
    """One executed pipeline step."""

    name: StepName
    status: StepStatus
    summary: str
    duration_ms: int
    error: StepError | None = None
    metrics: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "status": self.status.value,
            "summary": self.summary,
            "duration_ms": self.duration_ms,
            "error": self.error.to_dict() if self.error else None,
            "metrics": self.metrics,
        }


@dataclass(frozen=True)
class Invocation:
    """How the run was invoked."""

    args: dict[str, Any]
    dry_run: bool
    command_name: str = COMMAND_NAME
    command_classification: CommandClassification = CommandClassification.WRITE

    def to_dict(self) -> dict[str, Any]:
        return {
            "command_name": self.command_name,
            "command_classification": self.command_classification.value,
            "args": self.args,
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True)
class Manifest:
    """Immutable record of a finished run."""

    run_id: str
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    status: RunStatus
    exit_code: int
    invocation: Invocation
    tenant_id: str
    steps: tuple[Step, ...]
    safety: dict[str, Any] | None = None
    results: dict[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    errors: tuple[StepError, ...] = ()
    schema_version: str = MANIFEST_SCHEMA_VERSION

    def step(self, name: StepName) -> Step | None:
        """The step with the given name, if it ran."""
        return next((s for s in self.steps if s.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "schema_version": self.schema_version,
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "invocation": self.invocation.to_dict(),
            "tenant_id": self.tenant_id,
            "safety": self.safety,
            "steps": [s.to_dict() for s in self.steps],
            "results": self.results,
            "warnings": list(self.warnings),
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class SeedRunResult:
    """What a seeding run returns to its caller."""

    status: RunStatus
    exit_code: int
    manifest: Manifest


class StepHandle:
    """Open step; closing it records the step on the builder."""

    def __init__(self, builder: ManifestBuilder, name: StepName) -> None:
        self._builder = builder
        self.name = name
        self._started = time.perf_counter()
        self.closed = False

    def close(
        self,
        status: StepStatus,
        summary: str,
        error: StepError | None = None,
        metrics: dict[str, Any] | None = None,
    ) -> Step:
        """Close the step.

        Raises:
            ManifestStateError: If the step was already closed.
        """
        if self.closed:
            raise ManifestStateError(f"Step {self.name.value} already closed")
        self.closed = True
        if error is not None:
            error = StepError(
                code=error.code,
                message=_truncate(error.message, MAX_ERROR_MESSAGE_CHARS),
                is_recoverable=error.is_recoverable,
            )
        step = Step(
            name=self.name,
            status=status,
            summary=_truncate(summary, MAX_SUMMARY_CHARS),
            duration_ms=round((time.perf_counter() - self._started) * 1000),
            error=error,
            metrics=metrics,
        )
        self._builder._record(step)
        return step


class ManifestBuilder:
    """Collects steps and run metadata, then finalizes a Manifest."""

    def __init__(
        self,
        tenant_id: str,
        args: dict[str, Any],
        dry_run: bool,
        run_id: str | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            tenant_id: Tenant being seeded.
            args: Invocation arguments; secret-looking keys are redacted.
            dry_run: Whether the run is a dry run.
            run_id: Run id; generated when omitted.
        """
        self.run_id = run_id or uuid.uuid4().hex
        self.tenant_id = tenant_id
        self.invocation = Invocation(args=redact_args(args), dry_run=dry_run)
        self.started_at = datetime.now(UTC)
        self._started = time.perf_counter()
        self._steps: list[Step] = []
        self._open: StepHandle | None = None
        self._safety: dict[str, Any] | None = None
        self._results: dict[str, Any] = {}
        self._warnings: list[str] = []
        self._errors: list[StepError] = []
        self._finalized: Manifest | None = None

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    def start_step(self, name: StepName) -> StepHandle:
        """Open the next step.

        Raises:
            ManifestStateError: If a step is still open, a previous step
                failed, the name was already used, it comes before an
                already-recorded step, or the manifest is finalized.
        """
        if self._finalized is not None:
            raise ManifestStateError("Manifest already finalized")
        if self._open is not None and not self._open.closed:
            raise ManifestStateError(f"Step {self._open.name.value} is still open")
        if any(s.status == StepStatus.FAILED for s in self._steps):
            raise ManifestStateError(f"Cannot start {name.value} after a failed step")
        if any(s.name == name for s in self._steps):
            raise ManifestStateError(f"Step {name.value} already ran")
        if self._steps and STEP_ORDER.index(name) < STEP_ORDER.index(self._steps[-1].name):
            raise ManifestStateError(
                f"Step {name.value} cannot run after {self._steps[-1].name.value}"
            )
        self._open = StepHandle(self, name)
        return self._open

    def _record(self, step: Step) -> None:
        self._steps.append(step)
        if step.error is not None and len(self._errors) < MAX_ERRORS:
            self._errors.append(step.error)

    def set_safety(self, safety: dict[str, Any]) -> None:
        self._safety = safety

    def set_result(self, key: str, value: Any) -> None:
        self._results[key] = value

    def add_warning(self, message: str) -> None:
        if len(self._warnings) < MAX_WARNINGS:
            self._warnings.append(_truncate(message, MAX_ERROR_MESSAGE_CHARS))

    def finalize(self, status: RunStatus, exit_code: int) -> Manifest:
        """Freeze the manifest.

        Raises:
            ManifestStateError: If a step is still open or already finalized.
        """
        if self._finalized is not None:
            raise ManifestStateError("Manifest already finalized")
        if self._open is not None and not self._open.closed:
            raise ManifestStateError(f"Step {self._open.name.value} is still open")
        self._finalized = Manifest(
            run_id=self.run_id,
            started_at=self.started_at,
            finished_at=datetime.now(UTC),
            duration_ms=round((time.perf_counter() - self._started) * 1000),
            status=status,
            exit_code=int(exit_code),
            invocation=self.invocation,
            tenant_id=self.tenant_id,
            steps=tuple(self._steps),
            safety=self._safety,
            results=dict(self._results),
            warnings=tuple(self._warnings),
            errors=tuple(self._errors),
        )
        return self._finalized
