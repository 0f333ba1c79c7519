"""
Where a signed-in client keeps its JWT and user between runs.
"""
import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class MemorySessionStore:
    def __init__(self):
        self._session = None

    def save(self, token: str, user: dict):
        self._session = {"token": token, "user": user}

    def load(self) -> Optional[dict]:
        return self._session

    def clear(self):
        self._session = None


class JsonFileSessionStore:
    """Session persisted as a small JSON file (e.g. ~/.becopy/session.json)."""

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def save(self, token: str, user: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token, "user": user}))

    def load(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return None
        if not data.get("token"):
            return None
        return data

    def clear(self):
        if self.path.exists():
            self.path.unlink()
