"""Append-only history of the actions taken in this session."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

import redis
from pydantic import TypeAdapter

from voicevault.core.config import get_settings
from voicevault.schemas.command import HistoryEntry

logger = logging.getLogger(__name__)

_entry_adapter: TypeAdapter = TypeAdapter(HistoryEntry)


class HistoryBackend(Protocol):
    def append(self, entry: HistoryEntry) -> None: ...

    def tail(self, limit: int) -> List[HistoryEntry]: ...

    def count(self) -> int: ...


class MemoryHistoryBackend:
    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def tail(self, limit: int) -> List[HistoryEntry]:
        return list(self._entries[-limit:]) if limit > 0 else []

    def count(self) -> int:
        return len(self._entries)


class RedisHistoryBackend:
    """Redis list per actor; entries are JSON encoded and only ever pushed."""

    def __init__(
        self,
        owner: Optional[str],
        redis_client: Optional[redis.Redis] = None,
        redis_url: Optional[str] = None,
    ) -> None:
        if redis_client is None:
            redis_client = redis.Redis.from_url(
                redis_url or get_settings().redis_url, decode_responses=True
            )
        self._client = redis_client
        self._owner = owner

    def _key(self) -> str:
        key_suffix = self._owner.lower() if self._owner else "anon"
        return f"voicevault:history:{key_suffix}"

    def append(self, entry: HistoryEntry) -> None:
        self._client.rpush(self._key(), _entry_adapter.dump_json(entry).decode("utf-8"))

    def tail(self, limit: int) -> List[HistoryEntry]:
        if limit <= 0:
            return []
        raw = self._client.lrange(self._key(), -limit, -1)
        return [_entry_adapter.validate_json(item) for item in raw]

    def count(self) -> int:
        return int(self._client.llen(self._key()))


class HistoryShadow:
    """Local log of create/decrypt actions. There is no delete or update."""

    def __init__(self, backend: Optional[HistoryBackend] = None, display_limit: int = 10) -> None:
        self._backend = backend or MemoryHistoryBackend()
        self.display_limit = display_limit

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        self._backend.append(entry)
        logger.debug(f"History: recorded {entry.kind} for {entry.name}")
        return entry

    def recent(self, limit: Optional[int] = None) -> Sequence[HistoryEntry]:
        """Most recent entries, oldest first."""
        return tuple(self._backend.tail(self.display_limit if limit is None else limit))

    def __len__(self) -> int:
        return self._backend.count()
