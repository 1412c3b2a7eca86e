"""Device-style key-value storage and the typed cache built on top of it."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from policy_relay.schemas.policy import PolicyRecord
from policy_relay.schemas.scores import Score, parse_score

POLICY_STORAGE_KEY = "@blockchain_policy_data"
HEALTH_SCORE_KEY = "@health_score"
PROFILE_PIC_KEY = "@profile_pic"
FOOD_ENTRIES_KEY = "@food_entries"

_POLICY_LIST = TypeAdapter(list[PolicyRecord])


class KeyValueStore:
    """String-to-string store persisted as a single JSON object.

    With ``path=None`` the store lives in memory only.  Every write rewrites
    the file through a temp file so a crash never leaves half a document.
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path).expanduser() if path is not None else None
        self._items: dict[str, str] = self._read()

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def clear(self) -> None:
        self._items.clear()
        self._flush()

    def keys(self) -> list[str]:
        return list(self._items)

    def _read(self) -> dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.warning("Storage file {path} is corrupt; starting empty", path=self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file {path} is not a JSON object; starting empty", path=self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._items, fh)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


class FoodEntry(BaseModel):
    """One logged meal."""

    id: str
    title: str
    image_uri: str = Field(..., alias="imageUri")
    timestamp: datetime
    verified: bool = False

    model_config = {"populate_by_name": True}


_FOOD_LIST = TypeAdapter(list[FoodEntry])


class LocalCache:
    """Typed access to the well-known keys the app keeps on the device."""

    def __init__(self, store: Optional[KeyValueStore] = None) -> None:
        self.store = store if store is not None else KeyValueStore()

    # ── Policies ────────────────────────────────────────────────────────

    def load_policies(self) -> list[PolicyRecord]:
        raw = self.store.get_item(POLICY_STORAGE_KEY)
        if not raw:
            return []
        try:
            return _POLICY_LIST.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable policy list: {err}", err=exc)
            return []

    def save_policies(self, records: list[PolicyRecord]) -> None:
        self.store.set_item(POLICY_STORAGE_KEY, _POLICY_LIST.dump_json(records, by_alias=True).decode())

    def clear_policies(self) -> None:
        self.store.remove_item(POLICY_STORAGE_KEY)

    # ── Health score ────────────────────────────────────────────────────

    def get_health_score(self) -> Optional[Score]:
        raw = self.store.get_item(HEALTH_SCORE_KEY)
        if raw is None:
            return None
        try:
            return parse_score(raw)
        except ValueError:
            logger.warning("Ignoring unparseable cached health score {raw!r}", raw=raw)
            return None

    def set_health_score(self, score: Any) -> None:
        self.store.set_item(HEALTH_SCORE_KEY, str(parse_score(score)))

    # ── Profile picture ─────────────────────────────────────────────────

    def get_profile_picture(self) -> Optional[str]:
        return self.store.get_item(PROFILE_PIC_KEY) or None

    def set_profile_picture(self, url: str) -> None:
        self.store.set_item(PROFILE_PIC_KEY, url)

    # ── Food log ────────────────────────────────────────────────────────

    def load_food_entries(self) -> list[FoodEntry]:
        raw = self.store.get_item(FOOD_ENTRIES_KEY)
        if not raw:
            return []
        try:
            return _FOOD_LIST.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable food log: {err}", err=exc)
            return []

    def append_food_entry(self, entry: FoodEntry) -> None:
        entries = self.load_food_entries()
        entries.append(entry)
        payload = _FOOD_LIST.dump_json(entries, by_alias=True)
        self.store.set_item(FOOD_ENTRIES_KEY, payload.decode())
