"""Scenario loading and validation.

Scenario definitions are small YAML or JSON files in a single directory. The
file stem is the scenario id; ``aliases`` lets one file answer to several ids.

Loading and validation are separate so a missing scenario and a malformed one
show up as different pipeline steps.
"""

from __future__ import annotations

import json
import re
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Protocol

import yaml

from app.core.logging import get_logger
from app.shared.seeder.config import (
    DEFAULT_BASE_IMPRESSIONS,
    MAX_BASE_IMPRESSIONS,
    MAX_DAYS,
    MIN_DAYS,
    SCENARIO_SCHEMA_VERSION,
    ScenarioDescriptor,
    ScenarioOption,
    Trend,
)
from app.shared.seeder.errors import ScenarioError

logger = get_logger(__name__)

SCENARIO_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MAX_SCENARIO_FILE_BYTES = 64 * 1024
# Campaign names append " - <platform label> (<seed>)" and must fit in 200 characters.
MAX_SCENARIO_NAME_CHARS = 150
SCENARIO_EXTENSIONS = (".yaml", ".yml", ".json")
DEFAULT_SCENARIO_DIR = Path(__file__).parent / "scenarios"


class ScenarioLoader(Protocol):
    """Resolves scenario ids to descriptors."""

    async def load(self, scenario_id: str) -> ScenarioDescriptor:
        """Load a scenario by id or alias."""
        ...

    async def list_scenarios(self) -> list[ScenarioOption]:
        """List every loadable scenario."""
        ...


def check_scenario_id(scenario_id: str) -> None:
    """Reject ids that could escape the scenario directory or are malformed.

    Args:
        scenario_id: Requested scenario id.

    Raises:
        ScenarioError: PATH_TRAVERSAL or INVALID_SCENARIO_ID.
    """
    if "/" in scenario_id or "\\" in scenario_id or ".." in scenario_id:
        raise ScenarioError(
            f"Scenario id '{scenario_id}' contains path separators",
            code="PATH_TRAVERSAL",
        )
    if not SCENARIO_ID_PATTERN.match(scenario_id):
        raise ScenarioError(
            f"Scenario id '{scenario_id}' must be lowercase kebab-case",
            code="INVALID_SCENARIO_ID",
        )


class FileScenarioLoader:
    """Scenario loader backed by a directory of YAML/JSON files."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        """Initialize the loader.

        Args:
            base_dir: Scenario directory; defaults to the bundled definitions.
        """
        self.base_dir = Path(base_dir) if base_dir else DEFAULT_SCENARIO_DIR

    async def load(self, scenario_id: str) -> ScenarioDescriptor:
        """Load a scenario by id, falling back to an alias scan.

        Args:
            scenario_id: Scenario id or alias.

        Returns:
            Descriptor with fields as found in the file.

        Raises:
            ScenarioError: PATH_TRAVERSAL, INVALID_SCENARIO_ID,
                SCENARIO_NOT_FOUND, FILE_TOO_LARGE or PARSE_ERROR.
        """
        check_scenario_id(scenario_id)

        path = self._find_by_stem(scenario_id)
        if path is not None:
            return self._descriptor_from_file(path)

        for candidate in self._scenario_files():
            try:
                descriptor = self._descriptor_from_file(candidate)
            except ScenarioError as e:
                logger.warning(
                    "seeder.scenario.alias_scan_skipped",
                    file=candidate.name,
                    error_code=e.code,
                )
                continue
            if scenario_id in descriptor.aliases:
                logger.info(
                    "seeder.scenario.alias_resolved",
                    alias=scenario_id,
                    scenario_id=descriptor.scenario_id,
                )
                return descriptor

        raise ScenarioError(
            f"Scenario '{scenario_id}' not found in {self.base_dir}",
            code="SCENARIO_NOT_FOUND",
        )

    async def list_scenarios(self) -> list[ScenarioOption]:
        """List every parseable scenario, sorted by id."""
        options: list[ScenarioOption] = []
        for path in self._scenario_files():
            try:
                descriptor = self._descriptor_from_file(path)
            except ScenarioError as e:
                logger.warning("seeder.scenario.list_skipped", file=path.name, error_code=e.code)
                continue
            options.append(
                ScenarioOption(
                    scenario_id=descriptor.scenario_id,
                    name=descriptor.name,
                    trend=str(getattr(descriptor.trend, "value", descriptor.trend)),
                    description=descriptor.description,
                    aliases=descriptor.aliases,
                )
            )
        return options

    def _scenario_files(self) -> list[Path]:
        if not self.base_dir.is_dir():
            return []
        return sorted(
            p
            for p in self.base_dir.iterdir()
            if p.is_file() and p.suffix in SCENARIO_EXTENSIONS and SCENARIO_ID_PATTERN.match(p.stem)
        )

    def _find_by_stem(self, scenario_id: str) -> Path | None:
        base = self.base_dir.resolve()
        for ext in SCENARIO_EXTENSIONS:
            candidate = (base / f"{scenario_id}{ext}").resolve()
            if not candidate.is_relative_to(base):
                raise ScenarioError(
                    f"Scenario path escapes {base}",
                    code="PATH_TRAVERSAL",
                )
            if candidate.is_file():
                return candidate
        return None

    def _descriptor_from_file(self, path: Path) -> ScenarioDescriptor:
        size = path.stat().st_size
        if size > MAX_SCENARIO_FILE_BYTES:
            raise ScenarioError(
                f"Scenario file {path.name} is {size} bytes (limit {MAX_SCENARIO_FILE_BYTES})",
                code="FILE_TOO_LARGE",
            )

        data = _parse_document(path.read_bytes(), path)
        return descriptor_from_mapping(path.stem, data)


def _parse_document(raw: bytes, path: Path) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            documents = list(yaml.safe_load_all(text))
            if len(documents) > 1:
                raise ScenarioError(
                    f"Scenario file {path.name} contains {len(documents)} YAML documents",
                    code="PARSE_ERROR",
                )
            data = documents[0] if documents else None
    except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ScenarioError(
            f"Scenario file {path.name} could not be parsed: {e}",
            code="PARSE_ERROR",
        ) from e

    if not isinstance(data, dict):
        raise ScenarioError(
            f"Scenario file {path.name} must contain a mapping",
            code="PARSE_ERROR",
        )
    return data


def descriptor_from_mapping(scenario_id: str, data: dict[str, Any]) -> ScenarioDescriptor:
    """Build a descriptor from parsed scenario content without validating it.

    Args:
        scenario_id: Id to assign (the file stem).
        data: Parsed mapping using camelCase keys.

    Returns:
        Descriptor with raw field values.
    """
    aliases = data.get("aliases") or ()
    if not isinstance(aliases, list | tuple):
        aliases = (aliases,)
    return ScenarioDescriptor(
        schema_version=data.get("schemaVersion", ""),
        scenario_id=scenario_id,
        name=data.get("name", ""),
        trend=data.get("trend", ""),
        base_impressions=data.get("baseImpressions", DEFAULT_BASE_IMPRESSIONS),
        days=data.get("days"),
        date_anchor=data.get("dateAnchor"),
        description=data.get("description") or "",
        aliases=tuple(aliases),
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def collect_scenario_issues(descriptor: ScenarioDescriptor) -> list[str]:
    """Return every problem with a descriptor; empty when valid.

    Args:
        descriptor: Descriptor as produced by a loader.

    Returns:
        Human-readable issues.
    """
    issues: list[str] = []

    if not descriptor.schema_version:
        issues.append("schemaVersion is required")
    elif descriptor.schema_version != SCENARIO_SCHEMA_VERSION:
        issues.append(
            f"Unsupported schemaVersion '{descriptor.schema_version}' "
            f"(supported: {SCENARIO_SCHEMA_VERSION})"
        )

    if not isinstance(descriptor.name, str) or not descriptor.name.strip():
        issues.append("name is required")
    elif len(descriptor.name) > MAX_SCENARIO_NAME_CHARS:
        issues.append(
            f"name is {len(descriptor.name)} characters (limit {MAX_SCENARIO_NAME_CHARS})"
        )

    trend_values = [t.value for t in Trend]
    if not descriptor.trend:
        issues.append("trend is required")
    elif str(getattr(descriptor.trend, "value", descriptor.trend)) not in trend_values:
        issues.append(
            f"Unknown trend '{descriptor.trend}' (expected one of {', '.join(trend_values)})"
        )

    if not _is_int(descriptor.base_impressions) or not (
        1 <= descriptor.base_impressions <= MAX_BASE_IMPRESSIONS
    ):
        issues.append(f"baseImpressions must be an integer between 1 and {MAX_BASE_IMPRESSIONS}")

    if descriptor.days is not None and (
        not _is_int(descriptor.days) or not (MIN_DAYS <= descriptor.days <= MAX_DAYS)
    ):
        issues.append(f"days must be an integer between {MIN_DAYS} and {MAX_DAYS}")

    if descriptor.date_anchor is not None and not isinstance(descriptor.date_anchor, date):
        try:
            date.fromisoformat(str(descriptor.date_anchor))
        except ValueError:
            issues.append(f"dateAnchor '{descriptor.date_anchor}' is not an ISO date (YYYY-MM-DD)")

    if any(not isinstance(alias, str) for alias in descriptor.aliases):
        issues.append("aliases must be strings")

    return issues


def validate_scenario(descriptor: ScenarioDescriptor) -> ScenarioDescriptor:
    """Validate a descriptor and return it with typed fields.

    Args:
        descriptor: Descriptor as produced by a loader.

    Returns:
        Descriptor whose ``trend`` is a Trend and ``date_anchor`` a date.

    Raises:
        ScenarioError: INVALID_SCENARIO listing every issue found.
    """
    issues = collect_scenario_issues(descriptor)
    if issues:
        raise ScenarioError(
            f"Scenario '{descriptor.scenario_id}' is invalid: {'; '.join(issues)}",
            code="INVALID_SCENARIO",
            details={"issues": issues},
        )

    anchor = descriptor.date_anchor
    if anchor is not None and not isinstance(anchor, date):
        anchor = date.fromisoformat(str(anchor))

    return replace(
        descriptor,
        trend=Trend(getattr(descriptor.trend, "value", descriptor.trend)),
        date_anchor=anchor,
    )
