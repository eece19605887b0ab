"""Unified scenario seeder.

Seeds deterministic, provenance-tagged campaigns and daily metrics for a
tenant behind environment safety gates and a tenant hygiene check, and
returns a manifest describing every step that ran.

Provides:
- ``UnifiedSeedPipeline`` orchestrating the six pipeline steps
- File-backed scenario loader and golden fixture provider
- Deterministic metrics generator and provenance tagger
- ``SqlAlchemyDataStore`` over the marketing tables
- ``ManifestWriter`` for caller-side manifest persistence
"""

from app.shared.seeder.config import ExecutionMode, Platform, ScenarioDescriptor, SeedRequest, Trend
from app.shared.seeder.fixtures import FileFixtureProvider
from app.shared.seeder.manifest import ExitCode, Manifest, RunStatus, SeedRunResult, StepName
from app.shared.seeder.manifest_writer import ManifestWriter
from app.shared.seeder.pipeline import UnifiedSeedPipeline
from app.shared.seeder.scenarios import FileScenarioLoader
from app.shared.seeder.store import SqlAlchemyDataStore

__all__ = [
    "ExecutionMode",
    "ExitCode",
    "FileFixtureProvider",
    "FileScenarioLoader",
    "Manifest",
    "ManifestWriter",
    "Platform",
    "RunStatus",
    "ScenarioDescriptor",
    "SeedRequest",
    "SeedRunResult",
    "StepName",
    "SqlAlchemyDataStore",
    "Trend",
    "UnifiedSeedPipeline",
]
