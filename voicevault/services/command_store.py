"""Snapshot cache of the ledger's command records."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from voicevault.core.errors import RefreshPartialFailure
from voicevault.schemas.command import VoiceCommand
from voicevault.services.base import LedgerReader
from voicevault.services.status_channel import StatusChannel

logger = logging.getLogger(__name__)


class CommandStore:
    """Holds the last refreshed set of records.

    A refresh replaces the whole snapshot, never patches it. Only one refresh
    runs at a time; a second request while one is running is dropped.
    """

    def __init__(self, reader: LedgerReader, status: Optional[StatusChannel] = None) -> None:
        self._reader = reader
        self._status = status
        self._commands: Tuple[VoiceCommand, ...] = ()
        self.is_refreshing = False
        self.last_failures: List[RefreshPartialFailure] = []

    @property
    def commands(self) -> Tuple[VoiceCommand, ...]:
        return self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self):
        return iter(self._commands)

    def get(self, command_id: str) -> Optional[VoiceCommand]:
        for command in self._commands:
            if command.id == command_id:
                return command
        return None

    def search(self, term: str) -> Tuple[VoiceCommand, ...]:
        """Case-insensitive match on name or creator."""
        needle = (term or "").strip().lower()
        if not needle:
            return self._commands
        return tuple(
            c for c in self._commands
            if needle in c.name.lower() or needle in c.creator.lower()
        )

    async def refresh(self) -> Optional[Tuple[VoiceCommand, ...]]:
        """Reload every record from the ledger.

        Returns the new snapshot, or None if a refresh was already running or
        the identifier listing failed.
        """
        if self.is_refreshing:
            logger.info("Refresh already in progress, request dropped")
            return None

        self.is_refreshing = True
        try:
            try:
                identifiers = await self._reader.list_identifiers()
            except Exception as exc:
                logger.error(f"Failed to list record identifiers: {exc}")
                if self._status is not None:
                    self._status.error("Failed to load data")
                return None

            loaded: List[VoiceCommand] = []
            failures: List[RefreshPartialFailure] = []
            seen = set()
            for command_id in identifiers:
                if command_id in seen:
                    continue
                seen.add(command_id)
                try:
                    record = await self._reader.get_record(command_id)
                    loaded.append(VoiceCommand.from_record(command_id, record))
                except Exception as exc:
                    failure = RefreshPartialFailure(command_id, exc)
                    logger.warning(failure.message)
                    failures.append(failure)

            self._commands = tuple(loaded)
            self.last_failures = failures
            logger.info(f"Refreshed {len(loaded)} record(s), {len(failures)} failed")
            return self._commands
        finally:
            self.is_refreshing = False
