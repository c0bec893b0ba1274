"""Ledger providers.

Provider selected via VOICEVAULT_LEDGER_PROVIDER:
  - "memory": in-process ledger backed by the local FHE authority (dev/testing)
  - "gateway": JSON gateway in front of the deployed contract, via httpx
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from voicevault.core.errors import (
    AlreadyVerifiedRace,
    SubmissionFailed,
    classify_ledger_error,
)
from voicevault.schemas.command import LedgerRecord, TransactionReceipt
from voicevault.services.base import IdentityProvider
from voicevault.services.codec import decode_clear_values
from voicevault.services.fhe_authority import LocalFheAuthority

logger = logging.getLogger(__name__)

ANONYMOUS_ADDRESS = "0x0000000000000000000000000000000000000000"


def _sender(identity: Optional[IdentityProvider]) -> str:
    actor = identity.current_actor() if identity else None
    return actor.address if actor else ANONYMOUS_ADDRESS


# ============================================================================
# IN-MEMORY LEDGER
# ============================================================================

@dataclass
class _StoredRecord:
    name: str
    handle: str
    creator: str
    timestamp: int
    public_value1: int
    public_value2: int
    label: str
    is_verified: bool = False
    decrypted_value: int = 0

    def to_ledger_record(self) -> LedgerRecord:
        return LedgerRecord(
            name=self.name,
            timestamp=self.timestamp,
            creator=self.creator,
            public_value1=self.public_value1,
            public_value2=self.public_value2,
            is_verified=self.is_verified,
            decrypted_value=self.decrypted_value,
        )


@dataclass
class InMemoryTransaction:
    """Transaction that commits when awaited."""
    tx_hash: str
    _commit: Callable[[], None] = field(repr=False)
    _receipt: Optional[TransactionReceipt] = field(default=None, repr=False)

    async def wait(self) -> TransactionReceipt:
        if self._receipt is None:
            self._commit()
            self._receipt = TransactionReceipt(tx_hash=self.tx_hash)
        return self._receipt


class InMemoryLedger:
    """Single-contract ledger held in process memory.

    Records keep insertion order. Writes are validated and applied when the
    returned transaction is awaited.
    """

    provider_name = "memory"

    def __init__(
        self,
        authority: LocalFheAuthority,
        contract_address: str,
        identity: Optional[IdentityProvider] = None,
        available: bool = True,
    ) -> None:
        self._authority = authority
        self._contract_address = contract_address
        self._identity = identity
        self._records: Dict[str, _StoredRecord] = {}
        self._tx_counter = itertools.count(1)
        self.available = available

    def _next_tx_hash(self) -> str:
        return f"0x{next(self._tx_counter):064x}"

    def _require(self, command_id: str) -> _StoredRecord:
        record = self._records.get(command_id)
        if record is None:
            raise KeyError(f"Record not found: {command_id}")
        return record

    # --- reads ---

    async def list_identifiers(self) -> list[str]:
        return list(self._records)

    async def get_record(self, command_id: str) -> LedgerRecord:
        return self._require(command_id).to_ledger_record()

    async def get_ciphertext_handle(self, command_id: str) -> str:
        return self._require(command_id).handle

    async def is_available(self) -> bool:
        return self.available

    # --- writes ---

    async def create_record(
        self,
        command_id: str,
        name: str,
        ciphertext: str,
        proof: str,
        category_code: int,
        secondary_code: int,
        label: str,
    ) -> InMemoryTransaction:
        creator = _sender(self._identity)

        def commit() -> None:
            if command_id in self._records:
                raise SubmissionFailed(f"Record already exists: {command_id}")
            if not self._authority.verify_input(ciphertext, proof, self._contract_address, creator):
                raise SubmissionFailed("Invalid input proof")
            self._records[command_id] = _StoredRecord(
                name=name,
                handle=ciphertext,
                creator=creator,
                timestamp=int(time.time()),
                public_value1=category_code,
                public_value2=secondary_code,
                label=label,
            )
            logger.info(f"Ledger: created record {command_id}")

        return InMemoryTransaction(tx_hash=self._next_tx_hash(), _commit=commit)

    async def submit_decryption_proof(
        self, command_id: str, encoded_clear_values: str, proof: str
    ) -> InMemoryTransaction:
        def commit() -> None:
            record = self._records.get(command_id)
            if record is None:
                raise SubmissionFailed(f"Record not found: {command_id}")
            if record.is_verified:
                raise AlreadyVerifiedRace("Data already verified")
            if not self._authority.verify_decryption([record.handle], encoded_clear_values, proof):
                raise SubmissionFailed("Invalid decryption proof")
            record.decrypted_value = decode_clear_values(encoded_clear_values)[0]
            record.is_verified = True
            logger.info(f"Ledger: verified record {command_id}")

        return InMemoryTransaction(tx_hash=self._next_tx_hash(), _commit=commit)

    def mark_verified(self, command_id: str, value: int) -> None:
        """Record a verification made outside this session."""
        record = self._require(command_id)
        record.is_verified = True
        record.decrypted_value = value


# ============================================================================
# GATEWAY LEDGER (httpx)
# ============================================================================

class GatewayTransaction:
    """Transaction tracked by polling the gateway until it is final."""

    def __init__(self, ledger: "GatewayLedger", tx_hash: str) -> None:
        self._ledger = ledger
        self.tx_hash = tx_hash

    async def wait(self) -> TransactionReceipt:
        deadline = time.monotonic() + self._ledger.timeout
        while True:
            payload = await self._ledger._get(f"/transactions/{self.tx_hash}")
            status = payload.get("status", "pending")
            if status == "confirmed":
                return TransactionReceipt(tx_hash=self.tx_hash)
            if status == "failed":
                error = payload.get("error") or "Transaction reverted"
                raise classify_ledger_error(RuntimeError(error))
            if time.monotonic() >= deadline:
                raise SubmissionFailed(f"Timed out waiting for transaction {self.tx_hash}")
            await asyncio.sleep(self._ledger.poll_interval)


class GatewayLedger:
    provider_name = "gateway"

    def __init__(
        self,
        base_url: str,
        contract_address: str,
        api_token: str = "",
        identity: Optional[IdentityProvider] = None,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.contract_address = contract_address
        self.api_token = api_token.strip()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._identity = identity
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict[str, str]:
        headers = {"X-Actor-Address": _sender(self._identity)}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _path(self, suffix: str = "") -> str:
        return f"/contracts/{self.contract_address}{suffix}"

    async def _send(self, method: str, path: str, json: Optional[dict] = None) -> httpx.Response:
        if not self.is_configured():
            raise RuntimeError("Ledger gateway is not configured. Set VOICEVAULT_LEDGER_GATEWAY_URL.")
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        ) as client:
            return await client.request(method, path, json=json)

    async def _get(self, path: str) -> dict[str, Any]:
        response = await self._send("GET", path)
        response.raise_for_status()
        return response.json()

    async def _submit(self, path: str, body: dict[str, Any]) -> GatewayTransaction:
        try:
            response = await self._send("POST", path, json=body)
        except httpx.HTTPError as exc:
            raise SubmissionFailed(f"Gateway unreachable: {exc}") from exc
        if response.is_error:
            try:
                error = response.json().get("error") or response.text
            except ValueError:
                error = response.text
            raise classify_ledger_error(RuntimeError(error or f"HTTP {response.status_code}"))
        tx_hash = response.json()["tx_hash"]
        logger.info(f"Ledger gateway: submitted {tx_hash} to {path}")
        return GatewayTransaction(self, tx_hash)

    async def list_identifiers(self) -> list[str]:
        payload = await self._get(self._path("/records"))
        return [str(item) for item in payload.get("ids", [])]

    async def get_record(self, command_id: str) -> LedgerRecord:
        payload = await self._get(self._path(f"/records/{command_id}"))
        return LedgerRecord.model_validate(payload)

    async def get_ciphertext_handle(self, command_id: str) -> str:
        payload = await self._get(self._path(f"/records/{command_id}/handle"))
        return payload["handle"]

    async def is_available(self) -> bool:
        payload = await self._get(self._path("/available"))
        return bool(payload.get("available"))

    async def create_record(
        self,
        command_id: str,
        name: str,
        ciphertext: str,
        proof: str,
        category_code: int,
        secondary_code: int,
        label: str,
    ) -> GatewayTransaction:
        return await self._submit(
            self._path("/records"),
            {
                "id": command_id,
                "name": name,
                "ciphertext": ciphertext,
                "proof": proof,
                "publicValue1": category_code,
                "publicValue2": secondary_code,
                "label": label,
            },
        )

    async def submit_decryption_proof(
        self, command_id: str, encoded_clear_values: str, proof: str
    ) -> GatewayTransaction:
        return await self._submit(
            self._path(f"/records/{command_id}/verify"),
            {"clearValues": encoded_clear_values, "proof": proof},
        )
