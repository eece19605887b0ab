"""Golden fixtures: expected output shape of a (scenario, seed) run.

A fixture records how many campaigns and metric rows a run produces per
platform, plus a checksum over that shape. HYBRID runs compare their generated
batches against it so drift in the generator is caught before anyone relies on
the seeded data; FIXTURE runs only load and re-check it.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from app.core.logging import get_logger
from app.shared.seeder.errors import FixtureError

logger = get_logger(__name__)

FIXTURE_SCHEMA_VERSION = "1.0.0"
MAX_FIXTURE_BYTES = 256 * 1024
MAX_FIXTURE_ROWS = 1000
DEFAULT_FIXTURE_DIR = Path(__file__).parent / "fixtures"


@dataclass(frozen=True)
class GoldenFixture:
    """Expected shape of a run.

    Attributes:
        schema_version: Fixture schema version.
        scenario_id: Scenario the fixture belongs to.
        seed: Seed the fixture was recorded with.
        shape: ``totalCampaigns``, ``totalMetricRows`` and ``perPlatform``
            counts.
        checksum: ``sha256:<hex>`` over the canonical shape.
    """

    schema_version: str
    scenario_id: str
    seed: int
    shape: dict[str, Any]
    checksum: str


class FixtureProvider(Protocol):
    """Loads golden fixtures."""

    async def load_fixture(self, scenario_id: str, seed: int) -> GoldenFixture:
        """Load the fixture for a scenario and seed."""
        ...

    def validate_checksum(self, fixture: GoldenFixture) -> bool:
        """Whether the fixture's checksum matches its shape."""
        ...


def canonical_json(value: Any) -> str:
    """Serialize with sorted keys and compact separators."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_shape_checksum(shape: dict[str, Any]) -> str:
    """Checksum of a shape as ``sha256:`` followed by the hex digest.

    Args:
        shape: Shape mapping.

    Returns:
        Checksum string.
    """
    digest = hashlib.sha256(canonical_json(shape).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def build_shape(metric_rows_by_platform: dict[str, int]) -> dict[str, Any]:
    """Build the shape of a run from its per-platform metric row counts.

    Args:
        metric_rows_by_platform: Metric rows per platform value.

    Returns:
        Shape mapping in fixture layout.
    """
    return {
        "totalCampaigns": len(metric_rows_by_platform),
        "totalMetricRows": sum(metric_rows_by_platform.values()),
        "perPlatform": {
            platform: {"campaigns": 1, "metricRows": rows}
            for platform, rows in sorted(metric_rows_by_platform.items())
        },
    }


class FileFixtureProvider:
    """Fixture provider reading ``<scenario>_seed<seed>.fixture.json`` files."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        """Initialize the provider.

        Args:
            base_dir: Fixture directory; defaults to the bundled fixtures.
        """
        self.base_dir = Path(base_dir) if base_dir else DEFAULT_FIXTURE_DIR

    async def load_fixture(self, scenario_id: str, seed: int) -> GoldenFixture:
        """Load and verify a fixture.

        Args:
            scenario_id: Scenario id.
            seed: Run seed.

        Returns:
            The verified fixture.

        Raises:
            FixtureError: With one of FIXTURE_NOT_FOUND, PATH_TRAVERSAL,
                FIXTURE_TOO_LARGE, PARSE_ERROR, UNSUPPORTED_SCHEMA_VERSION,
                INVALID_SCENARIO_ID, FIXTURE_ROW_LIMIT, CHECKSUM_MISMATCH.
        """
        filename = f"{scenario_id}_seed{seed}.fixture.json"
        base = self.base_dir.resolve()
        path = (base / filename).resolve()
        if not path.is_relative_to(base):
            raise FixtureError("Fixture path escapes the fixture directory", code="PATH_TRAVERSAL")

        if not path.is_file():
            raise FixtureError(f"Fixture file not found: {filename}", code="FIXTURE_NOT_FOUND")

        size = path.stat().st_size
        if size > MAX_FIXTURE_BYTES:
            raise FixtureError(
                f"Fixture {filename} is {size} bytes (limit {MAX_FIXTURE_BYTES})",
                code="FIXTURE_TOO_LARGE",
            )

        try:
            raw = json.loads(path.read_bytes().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FixtureError(
                f"Invalid JSON in fixture {filename}: {e}", code="PARSE_ERROR"
            ) from e
        if not isinstance(raw, dict) or not isinstance(raw.get("shape"), dict):
            raise FixtureError(
                f"Fixture {filename} must be an object with a 'shape' object",
                code="PARSE_ERROR",
            )

        if raw.get("schemaVersion") != FIXTURE_SCHEMA_VERSION:
            raise FixtureError(
                f"Unsupported fixture schemaVersion '{raw.get('schemaVersion')}'",
                code="UNSUPPORTED_SCHEMA_VERSION",
            )

        if raw.get("scenarioId") != scenario_id:
            raise FixtureError(
                f"Fixture scenarioId '{raw.get('scenarioId')}' does not match '{scenario_id}'",
                code="INVALID_SCENARIO_ID",
            )

        total_rows = raw["shape"].get("totalMetricRows", 0)
        if not isinstance(total_rows, int) or total_rows > MAX_FIXTURE_ROWS:
            raise FixtureError(
                f"Fixture has too many rows ({total_rows} > {MAX_FIXTURE_ROWS})",
                code="FIXTURE_ROW_LIMIT",
            )

        fixture = GoldenFixture(
            schema_version=raw["schemaVersion"],
            scenario_id=scenario_id,
            seed=seed,
            shape=raw["shape"],
            checksum=str(raw.get("checksum", "")),
        )
        if not self.validate_checksum(fixture):
            raise FixtureError(
                f"Fixture integrity check failed. Stored: {fixture.checksum}, "
                f"computed: {compute_shape_checksum(fixture.shape)}",
                code="CHECKSUM_MISMATCH",
            )

        logger.info(
            "seeder.fixture.loaded",
            scenario_id=scenario_id,
            seed=seed,
            total_metric_rows=total_rows,
        )
        return fixture

    def validate_checksum(self, fixture: GoldenFixture) -> bool:
        """Whether the stored checksum matches the fixture's shape."""
        return compute_shape_checksum(fixture.shape) == fixture.checksum
