"""Best-effort manifest persistence for callers.

Writes go to a temp file in the target directory and are renamed into place,
so readers never see a half-written manifest. Failures are logged and never
change a run's exit code.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from app.core.logging import get_logger

if TYPE_CHECKING:
    from app.shared.seeder.manifest import Manifest

logger = get_logger(__name__)

MAX_MANIFEST_BYTES = 256 * 1024


def manifest_filename(run_id: str, command_name: str, at: datetime | None = None) -> str:
    """``<runId>_<command>_<YYYYMMDDTHHMMSSZ>.manifest.json``."""
    stamp = (at or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    return f"{run_id}_{command_name}_{stamp}.manifest.json"


def serialize_manifest(manifest: Manifest) -> str:
    """Indented JSON of a manifest."""
    return json.dumps(manifest.to_dict(), indent=2, default=str) + "\n"


class ManifestWriter:
    """Writes manifests as JSON files."""

    def __init__(self, max_bytes: int = MAX_MANIFEST_BYTES) -> None:
        self.max_bytes = max_bytes

    def write(self, manifest: Manifest, directory: Path | str) -> Path | None:
        """Persist a manifest.

        Args:
            manifest: Finalized manifest.
            directory: Target directory, created if missing.

        Returns:
            Path of the written file, or None if the write was skipped or failed.
        """
        payload = serialize_manifest(manifest).encode("utf-8")
        if len(payload) > self.max_bytes:
            logger.warning(
                "seeder.manifest.too_large",
                run_id=manifest.run_id,
                size_bytes=len(payload),
                max_bytes=self.max_bytes,
            )
            return None

        target_dir = Path(directory)
        final_path = target_dir / manifest_filename(
            manifest.run_id, manifest.invocation.command_name, manifest.finished_at
        )
        tmp_name: str | None = None
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=target_dir, prefix=".manifest-", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
            os.replace(tmp_name, final_path)
        except OSError as e:
            logger.warning(
                "seeder.manifest.write_failed",
                run_id=manifest.run_id,
                directory=str(target_dir),
                error=str(e),
            )
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return None

        logger.info("seeder.manifest.written", run_id=manifest.run_id, path=str(final_path))
        return final_path
