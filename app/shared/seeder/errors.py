"""Seeder error taxonomy.

Every error carries a machine-readable ``code`` and the process ``exit_code``
the run ends with when the error stops it.
"""

from typing import Any

from app.core.exceptions import SeedForgeError

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SCENARIO = 2
EXIT_BLOCKED = 78


class SeederError(SeedForgeError):
    """Base class for errors raised inside a seeding run.

    Attributes:
        exit_code: Process exit code for a run stopped by this error.
        is_recoverable: Whether retrying with different input can succeed.
    """

    default_code = "SEEDER_ERROR"
    exit_code = EXIT_FAILURE
    http_status = 500
    is_recoverable = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code or self.default_code,
            status_code=self.http_status,
            details=details,
        )


class SafetyGateError(SeederError):
    """Environment gates refused synthetic writes."""

    default_code = "SAFETY_BLOCK"
    http_status = 403


class ScenarioError(SeederError):
    """Scenario could not be loaded or failed validation."""

    default_code = "SCENARIO_ERROR"
    exit_code = EXIT_SCENARIO
    http_status = 400
    is_recoverable = True


class FixtureError(SeederError):
    """Golden fixture could not be loaded or its checksum is wrong."""

    default_code = "FIXTURE_ERROR"
    exit_code = EXIT_SCENARIO
    http_status = 400
    is_recoverable = True


class InvalidPlatformError(SeederError):
    """Requested platform list contains unknown or non-seedable tokens."""

    default_code = "INVALID_PLATFORM"
    exit_code = EXIT_BLOCKED
    http_status = 409
    is_recoverable = True


class HygieneError(SeederError):
    """Tenant holds real data and no override was given."""

    default_code = "HYGIENE_VIOLATION"
    exit_code = EXIT_BLOCKED
    http_status = 409
    is_recoverable = True


class WriteError(SeederError):
    """A platform batch failed to persist."""

    default_code = "WRITE_FAILED"


class VerificationError(SeederError):
    """Post-write verification found a mismatch."""

    default_code = "VERIFICATION_FAILED"


class InvalidInputError(SeederError):
    """Request parameters are out of range."""

    default_code = "INVALID_INPUT"
    exit_code = EXIT_BLOCKED
    http_status = 409
    is_recoverable = True
