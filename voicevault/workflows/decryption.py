"""
Decryption workflow: read record -> (short-circuit if verified) -> read handle
-> oracle proof bundle -> submit proof to ledger -> await finality -> refresh.

The oracle is never called for a record the ledger already reports verified.
At most one request per command is in flight per coordinator.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from voicevault.core.errors import (
    DecryptionFailed,
    OperationInProgress,
    OracleFailed,
    SubmissionRejectedByUser,
    VoiceVaultError,
    classify_ledger_error,
    is_already_verified,
)
from voicevault.schemas.command import Actor, DecryptEntry
from voicevault.services.base import DecryptionOracle, LedgerReader, LedgerWriter
from voicevault.services.command_store import CommandStore
from voicevault.services.history_store import HistoryShadow
from voicevault.services.status_channel import StatusChannel
from voicevault.workflows.creation import require_actor

logger = logging.getLogger(__name__)


class DecryptionCoordinator:
    def __init__(
        self,
        reader: LedgerReader,
        writer: LedgerWriter,
        oracle: DecryptionOracle,
        store: CommandStore,
        status: StatusChannel,
        history: HistoryShadow,
        contract_address: str,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._oracle = oracle
        self._store = store
        self._status = status
        self._history = history
        self.contract_address = contract_address
        self._in_flight: Set[str] = set()
        # Clear values obtained in this session; not authoritative until a
        # refresh shows the record verified
        self._local_values: Dict[str, int] = {}

    def is_decrypting(self, command_id: Optional[str] = None) -> bool:
        if command_id is None:
            return bool(self._in_flight)
        return command_id in self._in_flight

    def local_value(self, command_id: str) -> Optional[int]:
        return self._local_values.get(command_id)

    async def request_decryption(self, command_id: str, actor: Optional[Actor]) -> Optional[int]:
        """Disclose a command's value.

        Returns the clear value, or None when another actor verified the record
        first; in that case the store has been refreshed and holds the value.
        """
        require_actor(actor, self._status)
        if command_id in self._in_flight:
            raise OperationInProgress(f"Decryption already in progress for {command_id}")

        self._in_flight.add(command_id)
        try:
            return await self._decrypt(command_id)
        except Exception as exc:
            if is_already_verified(exc):
                logger.info(f"Record {command_id} was verified concurrently")
                self._status.success("Data is already verified on-chain")
                await self._store.refresh()
                return None
            message = exc.message if isinstance(exc, VoiceVaultError) else str(exc)
            message = message or "Unknown error"
            self._status.error(f"Decryption failed: {message}")
            if isinstance(exc, DecryptionFailed):
                raise
            raise DecryptionFailed(message) from exc
        finally:
            self._in_flight.discard(command_id)

    async def _decrypt(self, command_id: str) -> int:
        record = await self._reader.get_record(command_id)
        if record.is_verified:
            self._status.success("Data already verified on-chain")
            return record.decrypted_value

        handle = await self._reader.get_ciphertext_handle(command_id)
        self._status.pending("Verifying decryption on-chain...")

        try:
            bundle = await self._oracle.verify_decryption([handle], self.contract_address)
        except OracleFailed:
            raise
        except Exception as exc:
            if is_already_verified(exc):
                raise
            raise OracleFailed(str(exc) or exc.__class__.__name__) from exc

        if handle not in bundle.clear_values:
            raise OracleFailed(f"Oracle returned no clear value for handle {handle}")
        clear_value = int(bundle.clear_values[handle])

        try:
            tx = await self._writer.submit_decryption_proof(
                command_id, bundle.encoded_clear_values, bundle.proof
            )
            await tx.wait()
        except Exception as exc:
            error = classify_ledger_error(exc)
            if isinstance(error, SubmissionRejectedByUser):
                raise DecryptionFailed(error.message) from exc
            if error is exc:
                raise
            raise error from exc

        self._local_values[command_id] = clear_value
        try:
            self._history.append(DecryptEntry(name=record.name, value=clear_value))
        except Exception as exc:
            logger.error(f"History append failed for {command_id}: {exc}")
        await self._store.refresh()
        self._status.success("Voice command decrypted successfully!")
        logger.info(f"Decrypted record {command_id}")
        return clear_value
