"""Persistent conversation history (one JSON document, atomic writes)."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Protocol, Sequence, Union

from .messages import Turn, from_messages, to_messages

logger = logging.getLogger(__name__)

HISTORY_KEY = "chatbot_history"


# -----------------------------
# Helpers
# -----------------------------
def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    try:
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class HistoryStore(Protocol):
    def load(self) -> List[Turn]: ...

    def save(self, turns: Sequence[Turn]) -> None: ...


# -----------------------------
# FileHistoryStore
# -----------------------------
class FileHistoryStore:
    """Stores the whole message list under one key (``<dir>/chatbot_history.json``).

    ``save`` overwrites the previous value; there is no versioning and no size
    cap. A failed write is logged and otherwise ignored.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if path.suffix != ".json":
            path = path / f"{HISTORY_KEY}.json"
        self.path = path

    def load(self) -> List[Turn]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except OSError as e:
            logger.warning("could not read history at %s: %s", self.path, e)
            return []
        except ValueError:
            logger.warning("unparseable history at %s, starting fresh", self.path)
            self._quarantine()
            return []
        turns = from_messages(raw)
        if turns is None:
            logger.warning("malformed history at %s, ignoring it", self.path)
            return []
        return turns

    def save(self, turns: Sequence[Turn]) -> None:
        try:
            _atomic_write_text(self.path, json.dumps(to_messages(list(turns)), ensure_ascii=False))
        except OSError as e:
            logger.warning("could not save history to %s: %s", self.path, e)

    def _quarantine(self) -> None:
        bad = self.path.with_suffix(".corrupt.json")
        try:
            self.path.replace(bad)
        except OSError:
            logger.debug("could not move %s aside", self.path)


class MemoryHistoryStore:
    """Process-local store; keeps a copy so callers cannot mutate it in place."""

    def __init__(self, turns: Sequence[Turn] = ()) -> None:
        self._turns: List[Turn] = list(turns)
        self.saves = 0

    def load(self) -> List[Turn]:
        return list(self._turns)

    def save(self, turns: Sequence[Turn]) -> None:
        self._turns = list(turns)
        self.saves += 1
