"""Records who touched which namespace"""
import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class AdmissionLogger:
    """Appends one ``{"user": ..., "operation": ...}`` JSON line per request"""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record(self, user: str, operation: str) -> None:
        line = json.dumps({"user": user, "operation": operation})
        with self._lock:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        logger.debug(f"Recorded {operation} by {user!r}")
