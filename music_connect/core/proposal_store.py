"""Persistence helpers for the collection of saved activity proposals."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Iterator, List, Optional, Set

from pydantic import TypeAdapter, ValidationError

from music_connect.core.storage import KeyValueStorage, StorageError
from music_connect.schemas import DETAIL_CONTENT_FIELDS, ActivityDetail, SavedActivity


SAVED_ACTIVITIES_KEY = "savedActivities"

_SAVED_LIST = TypeAdapter(List[SavedActivity])

_LOGGER = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProposalStore:
    """Saved proposals kept newest-first and mirrored to a storage key.

    Every mutation serialises the whole collection and writes it before the
    in-memory list is replaced, so a failed write leaves both sides untouched.
    """

    def __init__(self, storage: KeyValueStorage, *, key: str = SAVED_ACTIVITIES_KEY) -> None:
        self._storage = storage
        self._key = key
        self._items: List[SavedActivity] = []

    @staticmethod
    def dump(items: List[SavedActivity]) -> str:
        return _SAVED_LIST.dump_json(items, by_alias=True).decode("utf-8")

    @staticmethod
    def parse(blob: str) -> List[SavedActivity]:
        return _SAVED_LIST.validate_json(blob)

    def load(self) -> List[SavedActivity]:
        """Replace the in-memory collection with the persisted one."""

        try:
            blob = self._storage.read(self._key)
        except StorageError:
            _LOGGER.warning(
                "Saved activities under %r could not be read; starting empty", self._key, exc_info=True
            )
            self._items = []
            return self.items
        if not blob:
            self._items = []
            return self.items
        try:
            items = self.parse(blob)
        except (ValidationError, ValueError):
            _LOGGER.warning("Saved activities under %r could not be parsed; starting empty", self._key)
            items = []
        self._items = self._drop_duplicates(items)
        return self.items

    def _drop_duplicates(self, items: List[SavedActivity]) -> List[SavedActivity]:
        seen_ids: Set[str] = set()
        seen_titles: Set[str] = set()
        unique: List[SavedActivity] = []
        for item in items:
            if item.id in seen_ids or item.title in seen_titles:
                _LOGGER.warning("Dropping duplicate saved proposal %r (%s)", item.title, item.id)
                continue
            seen_ids.add(item.id)
            seen_titles.add(item.title)
            unique.append(item)
        return unique

    def _commit(self, items: List[SavedActivity]) -> None:
        self._storage.write(self._key, self.dump(items))
        self._items = items

    @property
    def items(self) -> List[SavedActivity]:
        return [item.model_copy(deep=True) for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SavedActivity]:
        return iter(self.items)

    def get(self, activity_id: str) -> Optional[SavedActivity]:
        for item in self._items:
            if item.id == activity_id:
                return item.model_copy(deep=True)
        return None

    def find_by_title(self, title: str) -> Optional[SavedActivity]:
        for item in self._items:
            if item.title == title:
                return item.model_copy(deep=True)
        return None

    def is_saved(self, title: str) -> bool:
        return any(item.title == title for item in self._items)

    def _next_id(self, saved_at: int) -> str:
        existing = {item.id for item in self._items}
        while True:
            candidate = f"{saved_at}-{uuid.uuid4().hex[:8]}"
            if candidate not in existing:
                return candidate

    def add(self, detail: ActivityDetail, origin_label: Optional[str] = None) -> SavedActivity:
        """Save ``detail`` unless a proposal with the same title already exists."""

        existing = self.find_by_title(detail.title)
        if existing is not None:
            _LOGGER.debug("Proposal %r already saved; skipping add", detail.title)
            return existing

        saved_at = _now_ms()
        record = SavedActivity(
            **detail.content().model_dump(),
            id=self._next_id(saved_at),
            saved_at=saved_at,
            target_group_label=origin_label,
        )
        self._commit([record, *self._items])
        _LOGGER.info("Saved proposal %r as %s", record.title, record.id)
        return record.model_copy(deep=True)

    def remove(self, activity_id: str) -> bool:
        remaining = [item for item in self._items if item.id != activity_id]
        if len(remaining) == len(self._items):
            return False
        self._commit(remaining)
        _LOGGER.info("Removed saved proposal %s", activity_id)
        return True

    def update_by_title(self, detail: ActivityDetail) -> Optional[SavedActivity]:
        """Replace the content of the saved proposal whose title matches."""

        content = detail.content().model_dump()
        updated: Optional[SavedActivity] = None
        items: List[SavedActivity] = []
        for item in self._items:
            if updated is None and item.title == detail.title:
                updated = item.model_copy(update={key: content[key] for key in DETAIL_CONTENT_FIELDS}, deep=True)
                items.append(updated)
            else:
                items.append(item)

        if updated is None:
            return None
        self._commit(items)
        return updated.model_copy(deep=True)


__all__ = [
    "ProposalStore",
    "SAVED_ACTIVITIES_KEY",
]
