"""JSON file key-value store for the holdings ledger."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

from ..config import StorageConfig
from ..errors import StorageUnavailable

logger = logging.getLogger(__name__)


class JsonHoldingsStore:
    """Persist holdings under a single well-known key of a JSON document."""

    def __init__(self, config: StorageConfig) -> None:
        self.path = Path(config.path).expanduser()
        self.key = config.key

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise StorageUnavailable(f"Unexpected document in {self.path}")
        return document

    def _load_sync(self) -> dict[str, float]:
        document = self._read_document()
        holdings = document.get(self.key, {})
        if not isinstance(holdings, dict):
            raise StorageUnavailable(
                f"Key '{self.key}' in {self.path} does not hold a mapping"
            )
        return holdings

    def _save_sync(self, holdings: Mapping[str, float]) -> None:
        try:
            document = self._read_document()
        except StorageUnavailable:
            logger.warning("Overwriting unreadable store %s", self.path)
            document = {}
        document[self.key] = dict(holdings)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self) -> dict[str, float]:
        """Read the stored holdings. Missing file means no holdings."""
        holdings = await asyncio.to_thread(self._load_sync)
        logger.debug("Loaded %d holdings from %s", len(holdings), self.path)
        return holdings

    async def save(self, holdings: Mapping[str, float]) -> None:
        """Write ``holdings`` atomically, keeping other keys in the document."""
        await asyncio.to_thread(self._save_sync, holdings)
        logger.debug("Saved %d holdings to %s", len(holdings), self.path)
