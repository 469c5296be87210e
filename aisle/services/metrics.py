from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional, Dict

from aisle.config import Settings
from aisle.services.repo.json_repo import _locked  # reuse existing cross-platform lock

logger = logging.getLogger(__name__)


class MetricsLogger:
    """Append-only JSONL logger for latency metrics under DATA_DIR.

    Writes one JSON object per line with fields:
      - ts: ISO timestamp (UTC)
      - kind: "latency"
      - name: short name (e.g., "recipe_generate")
      - duration_ms: float
      - ok: whether the measured call succeeded
      - extra: optional dict with contextual fields
    """

    def __init__(self, settings: Optional[Settings] = None, filename: str = "latency_log.jsonl") -> None:
        self.settings = settings or Settings()
        self.path = os.path.join(self.settings.data_dir, filename)

    def log_latency(
        self,
        name: str,
        duration_ms: float,
        ok: bool = True,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "kind": "latency",
            "name": name,
            "duration_ms": float(duration_ms),
            "ok": ok,
        }
        if extra:
            entry["extra"] = extra
        line = (json.dumps(entry, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")
        try:
            with _locked(self.path):
                with open(self.path, "ab") as f:
                    f.write(line)
        except OSError as e:
            # Metrics never break a user flow.
            logger.warning("Could not write latency metric %s: %s", name, e)
