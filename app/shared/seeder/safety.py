"""Environment safety gates for synthetic writes.

Two gates, evaluated from settings with no I/O:

- ``TOOLKIT_ENV`` must name a writable environment (LOCAL, DEV, CI).
- The ``DATABASE_URL`` host must be explicitly safe. Operator hosts from
  ``TOOLKIT_SAFE_DB_HOSTS`` win, then managed-cloud suffixes are blocked, then
  a small local allowlist applies. Anything else is unknown and refused.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from app.core.config import Settings
from app.shared.seeder.errors import SafetyGateError

SAFETY_POLICY_VERSION = "1.0.0"
WRITABLE_ENVS = frozenset({"LOCAL", "DEV", "CI"})

BLOCKED_HOST_SUFFIXES: tuple[str, ...] = (
    ".supabase.co",
    ".supabase.com",
    ".rds.amazonaws.com",
    ".gcp.cloud",
    ".azure.com",
    ".neon.tech",
)

ALLOWED_HOSTS: tuple[str, ...] = (
    "localhost",
    "127.0.0.1",
    "::1",
    "host.docker.internal",
    "db",
    "postgres",
)


class HostClassification(str, Enum):
    """Classification of a database host."""

    ALLOWED = "ALLOWED"
    BLOCKED = "BLOCKED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate.

    Attributes:
        name: Gate name (``TOOLKIT_ENV`` or ``DATABASE_URL``).
        passed: Whether the gate allows writes.
        reason_code: Machine-readable reason.
        reason_message: Human-readable reason.
    """

    name: str
    passed: bool
    reason_code: str
    reason_message: str


@dataclass(frozen=True)
class SafetyReport:
    """All gate results plus masked environment summaries."""

    gates: tuple[GateResult, ...]
    toolkit_env: str | None
    db_host: str
    db_name: str
    db_classification: HostClassification
    matched_rule: str | None
    policy_version: str = SAFETY_POLICY_VERSION
    blocked_gate: str | None = field(default=None)

    @property
    def blocked(self) -> bool:
        return any(not gate.passed for gate in self.gates)

    @property
    def blocked_reason(self) -> str | None:
        for gate in self.gates:
            if not gate.passed:
                return gate.reason_message
        return None

    def as_dict(self) -> dict[str, Any]:
        """Manifest representation."""
        return {
            "policy_version": self.policy_version,
            "gates": [asdict(gate) for gate in self.gates],
            "toolkit_env": self.toolkit_env,
            "db_host_masked": self.db_host,
            "db_name_masked": self.db_name,
            "db_classification": self.db_classification.value,
            "matched_rule": self.matched_rule,
        }


def classify_host(
    hostname: str, safe_hosts: list[str] | None = None
) -> tuple[HostClassification, str | None]:
    """Classify a database host.

    Args:
        hostname: Host from the database URL.
        safe_hosts: Operator-approved hosts, checked first.

    Returns:
        Classification and the rule that matched, if any.
    """
    lower = hostname.lower()

    for host in safe_hosts or []:
        if lower == host.lower():
            return HostClassification.ALLOWED, f"custom:{host}"

    for suffix in BLOCKED_HOST_SUFFIXES:
        if lower.endswith(suffix) or lower == suffix[1:]:
            return HostClassification.BLOCKED, f"blocklist:{suffix}"

    if lower in ALLOWED_HOSTS:
        return HostClassification.ALLOWED, f"allowlist:{lower}"

    return HostClassification.UNKNOWN, None


def parse_database_host(database_url: str) -> tuple[str, str]:
    """Extract host and database name without credentials.

    Returns ``("UNPARSEABLE", "UNPARSEABLE")`` when the URL cannot be parsed
    or is empty, so a bad URL never passes the gate.
    """
    if not database_url:
        return "UNPARSEABLE", "UNPARSEABLE"
    try:
        url = make_url(database_url)
    except ArgumentError:
        return "UNPARSEABLE", "UNPARSEABLE"
    return url.host or "UNPARSEABLE", url.database or ""


def mask_database_url(database_url: str) -> str:
    """Keep only host and database name of a database URL."""
    host, name = parse_database_host(database_url)
    if host == "UNPARSEABLE":
        return "[UNPARSEABLE_URL]"
    return f"postgresql://***:***@{host}/{name}"


def evaluate_safety_gates(settings: Settings) -> SafetyReport:
    """Evaluate both gates against settings.

    Args:
        settings: Application settings.

    Returns:
        Report with one result per gate.
    """
    env = settings.toolkit_env.strip().upper() if settings.toolkit_env else None
    env_allowed = env is not None and env in WRITABLE_ENVS
    if env is None:
        env_gate = GateResult(
            name="TOOLKIT_ENV",
            passed=False,
            reason_code="MISSING_ENV",
            reason_message="TOOLKIT_ENV is not set. Set it to LOCAL, DEV or CI to allow writes.",
        )
    elif env_allowed:
        env_gate = GateResult(
            name="TOOLKIT_ENV",
            passed=True,
            reason_code="ALLOWED",
            reason_message=f"TOOLKIT_ENV={env} is writable.",
        )
    else:
        env_gate = GateResult(
            name="TOOLKIT_ENV",
            passed=False,
            reason_code="BLOCKED_ENV",
            reason_message=f"TOOLKIT_ENV={env} is not one of LOCAL, DEV, CI.",
        )

    host, db_name = parse_database_host(settings.database_url)
    classification, rule = classify_host(host, settings.safe_db_hosts)
    if classification == HostClassification.ALLOWED:
        db_gate = GateResult(
            name="DATABASE_URL",
            passed=True,
            reason_code="ALLOWED",
            reason_message=f"Host '{host}' is allowed ({rule}).",
        )
    elif classification == HostClassification.BLOCKED:
        db_gate = GateResult(
            name="DATABASE_URL",
            passed=False,
            reason_code="BLOCKED_HOST",
            reason_message=f"Host '{host}' matches {rule}; managed databases are never seeded.",
        )
    else:
        db_gate = GateResult(
            name="DATABASE_URL",
            passed=False,
            reason_code="UNKNOWN_HOST",
            reason_message=(
                f"Host '{host}' is not in the allowlist. "
                "Add it to TOOLKIT_SAFE_DB_HOSTS if intentional."
            ),
        )

    blocked_gate = next((g.name for g in (env_gate, db_gate) if not g.passed), None)
    return SafetyReport(
        gates=(env_gate, db_gate),
        toolkit_env=env,
        db_host=host,
        db_name=db_name,
        db_classification=classification,
        matched_rule=rule,
        blocked_gate=blocked_gate,
    )


def require_safe_environment(report: SafetyReport) -> None:
    """Raise when any gate failed.

    Raises:
        SafetyGateError: SAFETY_BLOCK naming the first failing gate.
    """
    if report.blocked:
        raise SafetyGateError(
            f"Safety gate {report.blocked_gate} blocked the run: {report.blocked_reason}",
            details={"gate": report.blocked_gate},
        )
