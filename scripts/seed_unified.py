#!/usr/bin/env python
"""Unified scenario seeder CLI.

Seed deterministic, provenance-tagged campaigns and daily metrics for one
tenant. Re-running the same tenant, scenario and seed replaces exactly the
rows the previous run wrote.

Usage:
    # Seed every platform with the baseline scenario
    uv run python scripts/seed_unified.py --tenant acme --seed 12345

    # Two platforms, one week, no writes
    uv run python scripts/seed_unified.py --tenant acme --platforms google,meta --days 7 --dry-run

    # Compare against the golden fixture
    uv run python scripts/seed_unified.py --tenant acme --seed 12345 --mode HYBRID

    # Inspect the golden fixture without writing
    uv run python scripts/seed_unified.py --tenant acme --seed 12345 --mode FIXTURE

    # List scenarios
    uv run python scripts/seed_unified.py --list-scenarios

Exit codes:
    0   success
    1   failure (safety gate, write or verification)
    2   scenario or fixture error
    78  blocked (tenant holds real data, or invalid platform/input)
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from app.core.config import get_settings
from app.core.database import session_scope
from app.core.logging import configure_logging
from app.shared.seeder import (
    ExecutionMode,
    FileFixtureProvider,
    FileScenarioLoader,
    ManifestWriter,
    SeedRequest,
    SeedRunResult,
    SqlAlchemyDataStore,
    UnifiedSeedPipeline,
)
from app.shared.seeder.config import MAX_DAYS, MAX_SEED, MIN_DAYS


def _bounded_int(low: int, high: int):
    def parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"Not an integer: {value}") from e
        if not low <= number <= high:
            raise argparse.ArgumentTypeError(f"Must be between {low} and {high}: {value}")
        return number

    return parse


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="SeedForge unified scenario seeder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  seed_unified.py --tenant acme --seed 12345
  seed_unified.py --tenant acme --scenario growth --platforms tiktok,shopee --days 14
  seed_unified.py --tenant acme --dry-run --no-manifest
  seed_unified.py --list-scenarios
        """,
    )

    parser.add_argument(
        "--list-scenarios",
        action="store_true",
        help="List loadable scenarios and exit",
    )

    # Run options
    parser.add_argument(
        "--tenant",
        help="Tenant to seed (required unless --list-scenarios)",
    )
    parser.add_argument(
        "--scenario",
        default="baseline",
        help="Scenario id or alias (default: baseline)",
    )
    parser.add_argument(
        "--seed",
        type=_bounded_int(0, MAX_SEED),
        default=12345,
        help="Seed for reproducible output (default: 12345)",
    )
    parser.add_argument(
        "--days",
        type=_bounded_int(MIN_DAYS, MAX_DAYS),
        help="Days per platform (default: scenario's day count)",
    )
    parser.add_argument(
        "--platforms",
        help="Comma-separated platforms or aliases (default: all seedable platforms)",
    )
    parser.add_argument(
        "--mode",
        type=str.upper,
        choices=[m.value for m in ExecutionMode],
        default=ExecutionMode.GENERATED.value,
        help="GENERATED; FIXTURE to check the golden fixture only; HYBRID to compare",
    )

    # Safety options
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate and verify without writing",
    )
    parser.add_argument(
        "--allow-real-tenant",
        action="store_true",
        help="Seed even if the tenant holds real (non-mock) data",
    )

    # Manifest options
    parser.add_argument(
        "--manifest-dir",
        type=Path,
        help="Directory for the run manifest (default: SEEDER_MANIFEST_DIR)",
    )
    parser.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not write a manifest file",
    )

    return parser


def build_request(args: argparse.Namespace) -> SeedRequest:
    """Build a seed request from parsed arguments."""
    return SeedRequest(
        tenant_id=args.tenant,
        scenario_id=args.scenario,
        seed=args.seed,
        days=args.days,
        dry_run=args.dry_run,
        allow_real_tenant=args.allow_real_tenant,
        platforms=args.platforms,
        mode=ExecutionMode(args.mode),
    )


def print_banner() -> None:
    """Print the CLI banner."""
    print()
    print("=" * 60)
    print("  SeedForge - Unified Scenario Seeder")
    print("=" * 60)
    print()


def print_summary(result: SeedRunResult, manifest_path: Path | None) -> None:
    """Print step outcomes and the run result."""
    manifest = result.manifest
    print(f"Run {manifest.run_id} for tenant '{manifest.tenant_id}'")
    print("-" * 60)
    for step in manifest.steps:
        print(f"  {step.name.value:<18} {step.status.value:<8} {step.duration_ms:>6} ms")
        if step.summary:
            print(f"      {step.summary}")
    print("-" * 60)

    for warning in manifest.warnings:
        print(f"WARNING: {warning}")

    applied = manifest.results.get("applied_rows") or manifest.results.get("planned_rows") or {}
    if applied:
        label = "Planned" if manifest.invocation.dry_run else "Applied"
        print(f"{label} metric rows:")
        for platform, rows in applied.items():
            print(f"  {platform:<20} {rows:>8,}")

    if manifest_path is not None:
        print(f"Manifest: {manifest_path}")
    print()
    print(f"Status: {result.status.value} (exit {result.exit_code})")


async def run_list_scenarios() -> int:
    """Print every loadable scenario."""
    settings = get_settings()
    options = await FileScenarioLoader(settings.seeder_scenario_dir or None).list_scenarios()
    if not options:
        print("No scenarios found.")
        return 1

    print("Available scenarios:")
    print("-" * 60)
    for option in options:
        aliases = f" (aliases: {', '.join(option.aliases)})" if option.aliases else ""
        print(f"  {option.scenario_id:<16} {option.trend:<8} {option.name}{aliases}")
    return 0


async def run_seed(args: argparse.Namespace) -> int:
    """Run the pipeline and persist the manifest."""
    settings = get_settings()

    async with session_scope() as session:
        pipeline = UnifiedSeedPipeline(
            store=SqlAlchemyDataStore(session),
            scenario_loader=FileScenarioLoader(settings.seeder_scenario_dir or None),
            fixture_provider=FileFixtureProvider(settings.seeder_fixture_dir or None),
            settings=settings,
        )
        result = await pipeline.run(build_request(args))

    manifest_path = None
    if not args.no_manifest:
        directory = args.manifest_dir or Path(settings.seeder_manifest_dir)
        manifest_path = ManifestWriter().write(result.manifest, directory)

    print_summary(result, manifest_path)
    return result.exit_code


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging()
    print_banner()

    if args.list_scenarios:
        return await run_list_scenarios()

    if not args.tenant or not args.tenant.strip():
        parser.error("--tenant is required")

    return await run_seed(args)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
