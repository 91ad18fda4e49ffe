from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from smart_lunch.config import Settings
from smart_lunch.services.exceptions import RepoError
from smart_lunch.services.repo.store import _locked  # same cross-platform lock as the JSON store

logger = logging.getLogger(__name__)


class MetricsLogger:
    """Append-only JSONL logger for latency metrics under data/.

    Writes one JSON object per line with fields:
      - ts: ISO timestamp (UTC)
      - kind: "latency"
      - name: short name (e.g., "recipe_chat", "image_generate")
      - origin: "backend" | "frontend"
      - duration_ms: float
      - extra: optional dict with contextual fields
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.path = os.path.join(self.settings.data_dir, self.settings.metrics_file)

    def log_latency(
        self,
        name: str,
        duration_ms: float,
        origin: str,
        extra: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        corr_id: Optional[str] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "kind": "latency",
            "name": name,
            "origin": origin,
            "duration_ms": float(duration_ms),
        }
        if user_id:
            entry["user"] = user_id
        if corr_id:
            entry["corr"] = corr_id
        if extra:
            entry["extra"] = extra
        line = (json.dumps(entry, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")
        try:
            with _locked(self.path) as f:
                f.seek(0, os.SEEK_END)
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, RepoError) as e:
            # metrics never break user flows
            logger.warning("Could not record latency metric %s: %s", name, e)

    @contextmanager
    def timed(self, name: str, **extra: Any) -> Iterator[Dict[str, Any]]:
        """Time a block; callers may add to the yielded dict before it closes."""
        t0 = time.perf_counter()
        try:
            yield extra
        finally:
            self.log_latency(name, (time.perf_counter() - t0) * 1000.0, origin="backend", extra=extra or None)
