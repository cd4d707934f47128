"""Processed-article persistence.

One JSON file per run day (`data/processed-articles-YYYY-MM-DD.json`).
Article ids across all files form the "already processed" set that keeps
reruns from paying for the same episode twice.
"""

from __future__ import annotations

from datetime import date, datetime
import json
import logging
from pathlib import Path
from typing import Iterable

from .models import Article, ProcessedArticle


LOGGER = logging.getLogger(__name__)

FILE_PREFIX = "processed-articles-"


def _sort_key(item: ProcessedArticle) -> tuple[float, str]:
    published = item.article.published_at
    ts = published.timestamp() if published else 0.0
    return ts, item.processed_date


class ArticleStore:
    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, day: date) -> Path:
        return self.data_dir / f"{FILE_PREFIX}{day.isoformat()}.json"

    def _files(self) -> list[Path]:
        if not self.data_dir.exists():
            return []
        return sorted(self.data_dir.glob(f"{FILE_PREFIX}*.json"))

    def _read(self, path: Path) -> list[ProcessedArticle]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Skipping unreadable data file %s: %s", path, exc)
            return []
        if not isinstance(payload, list):
            LOGGER.warning("Skipping data file with unexpected format: %s", path)
            return []
        items: list[ProcessedArticle] = []
        for raw in payload:
            try:
                if not isinstance(raw, dict):
                    raise TypeError(f"expected an object, got {type(raw).__name__}")
                item = ProcessedArticle.from_dict(raw)
                if not item.article.id:
                    raise ValueError("article id missing")
            except (TypeError, ValueError, AttributeError) as exc:
                LOGGER.warning("Skipping malformed record in %s: %s", path, exc)
                continue
            items.append(item)
        return items

    def save(self, processed: Iterable[ProcessedArticle], day: date | None = None) -> Path:
        """Write processed articles for `day`, merging with that day's file."""

        path = self.path_for(day or datetime.now().date())
        by_id: dict[str, ProcessedArticle] = {}
        if path.exists():
            for item in self._read(path):
                by_id[item.article.id] = item
        for item in processed:
            by_id[item.article.id] = item

        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = [item.to_dict() for item in by_id.values()]
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        LOGGER.info("Processed data saved to: %s (count=%d)", path, len(payload))
        return path

    def load_all(self) -> list[ProcessedArticle]:
        """All stored articles, one per id (later files win), newest first."""

        by_id: dict[str, ProcessedArticle] = {}
        for path in self._files():
            for item in self._read(path):
                by_id[item.article.id] = item
        return sorted(by_id.values(), key=_sort_key, reverse=True)

    def known_ids(self) -> set[str]:
        return {item.article.id for item in self.load_all()}

    def filter_new(self, articles: Iterable[Article]) -> list[Article]:
        known = self.known_ids()
        fresh = [a for a in articles if a.id not in known]
        LOGGER.info("New articles: %d (already processed: %d)", len(fresh), len(known))
        return fresh
