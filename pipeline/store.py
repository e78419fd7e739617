"""Stage checkpoints on disk.

Each stage writes its whole output as one pretty-printed JSON array under
``DATA_DIR``; the next stage reads it back.  Writes go through a temp file
and an atomic rename so a crashed run never leaves half a checkpoint.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from pipeline.errors import MissingCheckpointError, PipelineError
from pipeline.models import ClassificationResult, PipelineResult, ScrapedSite, SearchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_FILE = "search-results.json"
SCRAPED_FILE = "scraped-results.json"
CLASSIFIED_FILE = "classified-results.json"
SINGLE_FILE = "single-result.json"


class StageStore:
    """Read and write the per-stage JSON checkpoints in *data_dir*."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)

    def path(self, name: str) -> Path:
        return self.data_dir / name

    # ------------------------------------------------------------------
    # Low-level I/O
    # ------------------------------------------------------------------
    def _write(self, name: str, payload: Any) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        target = self.path(name)
        fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.info("[store] wrote %s", target)
        return target

    def _read(
        self, name: str, stage: str, hint: str, loader: Callable[[dict[str, Any]], T]
    ) -> list[T]:
        target = self.path(name)
        if not target.exists():
            raise MissingCheckpointError(stage, str(target), hint)
        try:
            raw = json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PipelineError(f"{target} is not valid JSON: {exc}") from exc
        if not isinstance(raw, list):
            raise PipelineError(f"{target} should hold a JSON array")
        return [loader(item) for item in raw]

    def _write_items(self, name: str, items: Sequence[Any]) -> Path:
        return self._write(name, [item.to_dict() for item in items])

    # ------------------------------------------------------------------
    # Stage checkpoints
    # ------------------------------------------------------------------
    def save_search(self, results: Sequence[SearchResult]) -> Path:
        return self._write_items(SEARCH_FILE, results)

    def load_search(self) -> list[SearchResult]:
        return self._read(SEARCH_FILE, "Search", "Run `search` first.", SearchResult.from_dict)

    def save_scraped(self, sites: Sequence[ScrapedSite]) -> Path:
        return self._write_items(SCRAPED_FILE, sites)

    def load_scraped(self) -> list[ScrapedSite]:
        return self._read(SCRAPED_FILE, "Scraped", "Run `scrape` first.", ScrapedSite.from_dict)

    def save_classified(self, results: Sequence[ClassificationResult]) -> Path:
        return self._write_items(CLASSIFIED_FILE, results)

    def load_classified(self) -> list[ClassificationResult]:
        return self._read(
            CLASSIFIED_FILE, "Classified", "Run `classify` first.", ClassificationResult.from_dict
        )

    def save_single(self, result: PipelineResult) -> Path:
        return self._write(SINGLE_FILE, result.to_dict())
