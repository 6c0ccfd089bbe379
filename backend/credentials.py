# credentials.py
import json
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

SLOT_NAME = "ai_api_key"
DEFAULT_PATH = ".article_whisperer.json"


class CredentialStore:
    """
    Holds the user's Gemini API key in one named slot of a small JSON file.
    get() is lazy: the file is only read when nothing is cached.
    """

    def __init__(self, path: str = DEFAULT_PATH):
        self.path = path
        self._key: Optional[str] = None

    def _read_slots(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read credential file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_slots(self, slots: dict) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(slots, f)

    def set(self, key: str) -> None:
        slots = self._read_slots()
        slots[SLOT_NAME] = key
        self._write_slots(slots)
        self._key = key
        logger.info("API key saved to %s", self.path)

    def get(self) -> Optional[str]:
        if not self._key:
            self._key = self._read_slots().get(SLOT_NAME) or None
        return self._key

    def clear(self) -> None:
        slots = self._read_slots()
        if slots.pop(SLOT_NAME, None) is not None:
            self._write_slots(slots)
        self._key = None
