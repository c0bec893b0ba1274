"""
Decryption oracle service.

Provider selected via VOICEVAULT_FHE_ORACLE_PROVIDER:
  - "stub": decrypts through the local FHE authority (dev/testing)
  - "relayer": requests public decryption from an FHE relayer via httpx

The oracle returns a proof bundle; submitting it to the ledger is the caller's
job. ``on_proof_ready`` is awaited with (encoded clear values, proof) when
given, for callers that still want the oracle to drive the submission.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from voicevault.core.errors import OracleFailed
from voicevault.schemas.command import DecryptionBundle
from voicevault.services.base import ProofCallback
from voicevault.services.codec import encode_clear_values
from voicevault.services.fhe_authority import LocalFheAuthority

logger = logging.getLogger(__name__)


class StubDecryptionOracle:
    provider_name = "stub"

    def __init__(self, authority: LocalFheAuthority) -> None:
        self._authority = authority

    async def verify_decryption(
        self,
        handles: Sequence[str],
        target_address: str,
        on_proof_ready: Optional[ProofCallback] = None,
    ) -> DecryptionBundle:
        logger.info(f"Oracle stub: decrypting {len(handles)} handle(s) for {target_address}")
        try:
            values = self._authority.decrypt(handles)
        except KeyError as exc:
            raise OracleFailed(str(exc)) from exc
        encoded = encode_clear_values(values)
        bundle = DecryptionBundle(
            clear_values=dict(zip(handles, values)),
            encoded_clear_values=encoded,
            proof=self._authority.sign_decryption(handles, encoded),
        )
        if on_proof_ready is not None:
            await on_proof_ready(bundle.encoded_clear_values, bundle.proof)
        return bundle


class RelayerDecryptionOracle:
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

    async def verify_decryption(
        self,
        handles: Sequence[str],
        target_address: str,
        on_proof_ready: Optional[ProofCallback] = None,
    ) -> DecryptionBundle:
        if not self.relayer_url:
            raise OracleFailed("VOICEVAULT_FHE_RELAYER_URL required for relayer oracle provider")
        try:
            async with httpx.AsyncClient(
                base_url=self.relayer_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    "/public-decrypt",
                    json={"handles": list(handles), "contract_address": target_address},
                )
                response.raise_for_status()
                data = response.json()
            bundle = DecryptionBundle(
                clear_values={h: int(v) for h, v in data["clear_values"].items()},
                encoded_clear_values=data["abi_encoded_clear_values"],
                proof=data["decryption_proof"],
            )
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text or str(exc)
            raise OracleFailed(f"Relayer returned {exc.response.status_code}: {detail}") from exc
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise OracleFailed(str(exc) or exc.__class__.__name__) from exc

        if on_proof_ready is not None:
            await on_proof_ready(bundle.encoded_clear_values, bundle.proof)
        return bundle
