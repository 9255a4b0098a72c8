"""
Decision telemetry — one numeric sample per planning cycle.

Every cycle's decision is recorded as ``1.0`` (broadcast) or ``0.0``
(silent), keyed by cycle number, so experiment logs can plot the
communication rate without re-deriving it from planner internals.

Samples live in a bounded in-memory buffer. Persistence to a rolling JSONL
file is optional (default path ``~/.plancomm/decisions.jsonl``, override with
``PLANCOMM_TELEMETRY_LOG``).
"""

import json
import logging
import os
import threading
import time
from collections import deque
from typing import Any, Dict, List, Optional

logger = logging.getLogger("PlanComm.Recorder")

_DEFAULT_LOG_PATH = os.getenv(
    "PLANCOMM_TELEMETRY_LOG",
    os.path.join(os.path.expanduser("~/.plancomm"), "decisions.jsonl"),
)


class DecisionRecorder:
    """Records per-cycle communication decisions."""

    #: Max lines kept in the rolling log file (older lines are trimmed on rotate).
    MAX_LOG_LINES = 10_000

    #: Rotation is checked once every this many persisted samples.
    ROTATE_EVERY = 1000

    def __init__(self, max_samples: int = 10_000, log_path: Optional[str] = None):
        self._samples: deque = deque(maxlen=max_samples)
        self._log_path = log_path or _DEFAULT_LOG_PATH
        self._log_enabled = False
        self._writes = 0
        self._lock = threading.Lock()

    @property
    def log_path(self) -> str:
        return self._log_path

    def enable_persistence(self, log_path: Optional[str] = None) -> None:
        """Append every recorded sample to a JSONL file."""
        if log_path:
            self._log_path = log_path
        directory = os.path.dirname(self._log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._log_enabled = True
        logger.info(f"Decision telemetry persistence enabled: {self._log_path}")

    def record(self, cycle: int, decision: Any) -> float:
        """Store the decision for *cycle* and return its numeric sample.

        *decision* is a :class:`~plancomm.engine.Decision` or a plain bool.
        """
        value = 1.0 if bool(decision) else 0.0
        entry: Dict[str, Any] = {
            "cycle": int(cycle),
            "t": getattr(decision, "timestamp", time.monotonic()),
            "value": value,
        }
        if hasattr(decision, "permitted"):
            entry["permitted"] = decision.permitted
            entry["topology"] = decision.topology_trigger
            entry["heartbeat"] = decision.heartbeat_trigger

        with self._lock:
            self._samples.append(entry)
        self._persist(entry)
        return value

    def _persist(self, entry: Dict[str, Any]) -> None:
        if not self._log_enabled:
            return
        try:
            with open(self._log_path, "a") as f:
                f.write(json.dumps(entry) + "\n")
            self._writes += 1
            if self._writes % self.ROTATE_EVERY == 0:
                self._rotate_if_needed()
        except OSError as exc:
            logger.warning(f"Decision telemetry write failed: {exc}")

    def _rotate_if_needed(self) -> None:
        """Trim the log file to MAX_LOG_LINES by discarding oldest entries."""
        with open(self._log_path, "r") as f:
            lines = f.readlines()
        if len(lines) > self.MAX_LOG_LINES:
            with open(self._log_path, "w") as f:
                f.writelines(lines[-self.MAX_LOG_LINES :])

    def samples(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._samples)

    def values(self) -> List[float]:
        with self._lock:
            return [s["value"] for s in self._samples]

    def communication_rate(self, last_n: Optional[int] = None) -> float:
        """Fraction of recent cycles that broadcast (0.0 when nothing is recorded)."""
        vals = self.values()
        if last_n is not None:
            vals = vals[-last_n:] if last_n > 0 else []
        if not vals:
            return 0.0
        return sum(vals) / len(vals)

    def read_history(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Read the last ``limit`` samples from the JSONL file."""
        if not os.path.exists(self._log_path):
            return []
        with open(self._log_path, "r") as f:
            lines = f.readlines()
        result = []
        for line in lines[-limit:]:
            line = line.strip()
            if not line:
                continue
            try:
                result.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed telemetry line: %r", line[:80])
        return result

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
