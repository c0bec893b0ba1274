"""
FHE input encryption service.

Provider selected via VOICEVAULT_FHE_ENCRYPTION_PROVIDER:
  - "stub": registers plaintexts with the local FHE authority (dev/testing)
  - "relayer": posts to an FHE relayer over HTTP via httpx
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from voicevault.core.errors import EncryptionFailed
from voicevault.schemas.command import EncryptedInput
from voicevault.services.fhe_authority import LocalFheAuthority

logger = logging.getLogger(__name__)


class StubEncryptionService:
    provider_name = "stub"

    def __init__(self, authority: LocalFheAuthority) -> None:
        self._authority = authority
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def encrypt(self, target_address: str, actor_address: str, value: int) -> EncryptedInput:
        logger.info(f"Encryption stub: encrypting input for {target_address}")
        handle, proof = self._authority.register(target_address, actor_address, value)
        return EncryptedInput(ciphertext=handle, proof=proof)


class RelayerEncryptionService:
    """Encrypts inputs through an FHE relayer's HTTP API."""

    provider_name = "relayer"

    def __init__(
        self,
        relayer_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.relayer_url = relayer_url.strip().rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.public_key: Optional[str] = None

    async def _post(self, path: str, body: dict) -> dict:
        async with httpx.AsyncClient(
            base_url=self.relayer_url, timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(path, json=body)
            response.raise_for_status()
            return response.json()

    async def initialize(self) -> None:
        if not self.relayer_url:
            raise ValueError("VOICEVAULT_FHE_RELAYER_URL required for relayer encryption provider")
        async with httpx.AsyncClient(
            base_url=self.relayer_url, timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.get("/keys")
            response.raise_for_status()
            self.public_key = response.json().get("public_key")
        logger.info("Relayer encryption: public key loaded")

    async def encrypt(self, target_address: str, actor_address: str, value: int) -> EncryptedInput:
        try:
            data = await self._post(
                "/encrypt",
                {"contract_address": target_address, "user_address": actor_address, "value": value},
            )
            return EncryptedInput(ciphertext=data["handle"], proof=data["input_proof"])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise EncryptionFailed(str(exc) or exc.__class__.__name__) from exc
