"""
Creation workflow: validate -> encrypt -> submit -> await finality -> refresh.

Each step starts only after the previous one resolved. The ``creating`` flag
covers the whole run and is released on every exit path.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

import pydantic

from voicevault.core.errors import (
    ConnectivityRequired,
    EncryptionFailed,
    OperationInProgress,
    SubmissionRejectedByUser,
    ValidationError,
    classify_ledger_error,
)
from voicevault.schemas.command import Actor, CreateCommandRequest, CreateEntry
from voicevault.services.base import EncryptionService, LedgerWriter
from voicevault.services.command_store import CommandStore
from voicevault.services.history_store import HistoryShadow
from voicevault.services.status_channel import StatusChannel

logger = logging.getLogger(__name__)


@dataclass
class CommandDraft:
    """Create-form contents; raw strings as typed by the user."""
    name: str = ""
    command: str = ""
    value: str = ""

    def reset(self) -> None:
        self.name = ""
        self.command = ""
        self.value = ""


class RecordIdFactory:
    """Millisecond timestamp ids, strictly increasing within a session."""

    def __init__(self, prefix: str = "command-") -> None:
        self.prefix = prefix
        self._last = 0

    def next_id(self) -> str:
        stamp = int(time.time() * 1000)
        if stamp <= self._last:
            stamp = self._last + 1
        self._last = stamp
        return f"{self.prefix}{stamp}"


def require_actor(actor: Optional[Actor], status: StatusChannel) -> Actor:
    if actor is None or not actor.connected or not actor.address:
        error = ConnectivityRequired()
        status.error(error.message)
        raise error
    return actor


class CreationCoordinator:
    def __init__(
        self,
        writer: LedgerWriter,
        encryption: EncryptionService,
        store: CommandStore,
        status: StatusChannel,
        history: HistoryShadow,
        contract_address: str,
        record_label: str = "Voice Command Data",
        id_factory: Optional[RecordIdFactory] = None,
        max_plaintext_bits: int = 64,
    ) -> None:
        self._writer = writer
        self._encryption = encryption
        self._store = store
        self._status = status
        self._history = history
        self.contract_address = contract_address
        self.record_label = record_label
        self._ids = id_factory or RecordIdFactory()
        self._max_plaintext_bits = max_plaintext_bits
        self.creating = False
        self.draft = CommandDraft()

    def validate(self, name: Any, category_code: Any, plaintext_value: Any) -> CreateCommandRequest:
        try:
            return CreateCommandRequest(
                max_bits=self._max_plaintext_bits,
                name=name,
                category_code=category_code,
                value=plaintext_value,
            )
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            message = first.get("msg", "Invalid input").removeprefix("Value error, ")
            error = ValidationError(message)
            self._status.error(error.message)
            raise error from exc

    async def create_from_draft(self, actor: Optional[Actor]) -> str:
        return await self.create(self.draft.name, self.draft.command, self.draft.value, actor)

    async def create(
        self,
        name: Any,
        category_code: Union[int, str],
        plaintext_value: Union[int, str],
        actor: Optional[Actor],
    ) -> str:
        """Encrypt a value and record it on the ledger. Returns the record id."""
        if self.creating:
            raise OperationInProgress("A command is already being created")

        actor = require_actor(actor, self._status)
        request = self.validate(name, category_code, plaintext_value)

        self.creating = True
        try:
            self._status.pending("Creating voice command with FHE encryption...")
            try:
                encrypted = await self._encryption.encrypt(
                    self.contract_address, actor.address, request.value
                )
            except EncryptionFailed as exc:
                self._status.error(f"Encryption failed: {exc.message}")
                raise
            except Exception as exc:
                self._status.error(f"Encryption failed: {exc}")
                raise EncryptionFailed(str(exc)) from exc

            command_id = self._ids.next_id()
            try:
                tx = await self._writer.create_record(
                    command_id,
                    request.name,
                    encrypted.ciphertext,
                    encrypted.proof,
                    request.category_code,
                    0,
                    self.record_label,
                )
                self._status.pending("Waiting for transaction confirmation...")
                await tx.wait()
            except Exception as exc:
                error = classify_ledger_error(exc)
                if isinstance(error, SubmissionRejectedByUser):
                    self._status.error(error.message)
                else:
                    self._status.error(f"Submission failed: {error.message or 'Unknown error'}")
                if error is exc:
                    raise
                raise error from exc

            logger.info(f"Created record {command_id} for {actor.address}")
            # The record is committed; a history outage must not fail the create
            try:
                self._history.append(CreateEntry(name=request.name, value=request.value))
            except Exception as exc:
                logger.error(f"History append failed for {command_id}: {exc}")
            await self._store.refresh()
            self.draft.reset()
            self._status.success("Voice command created successfully!")
            return command_id
        finally:
            self.creating = False
