"""
Blockfrost API chain backend.
Hosted indexer; requires only a project id.
"""

from __future__ import annotations

from typing import Any

import httpx
from adacore.exceptions import NetworkError, SubmissionRejected
from adacore.models import NetworkType, ProtocolParameters, UTxO
from loguru import logger
from pydantic import ValidationError

from adawallet.backends.base import ChainBackend

BLOCKFROST_URLS = {
    NetworkType.MAINNET: "https://cardano-mainnet.blockfrost.io/api/v0",
    NetworkType.PREPROD: "https://cardano-preprod.blockfrost.io/api/v0",
    NetworkType.PREVIEW: "https://cardano-preview.blockfrost.io/api/v0",
}

# Blockfrost's maximum page size
PAGE_SIZE = 100

DEFAULT_TIMEOUT = 30.0


def _error_message(response: httpx.Response) -> str:
    """Extract Blockfrost's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


class BlockfrostBackend(ChainBackend):
    """
    Chain backend using the Blockfrost REST API.
    Works with the hosted service or a self-hosted instance (``base_url``).
    """

    def __init__(
        self,
        project_id: str,
        network: NetworkType | str = NetworkType.PREVIEW,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.network = NetworkType(network)
        self.base_url = (base_url or BLOCKFROST_URLS[self.network]).rstrip("/")
        self._headers = {"project_id": project_id}
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

        if not project_id:
            logger.warning("Blockfrost project id is not set; requests will be rejected")

    async def _api_call(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an API call. Transport failures become NetworkError."""
        url = f"{self.base_url}/{endpoint}"
        try:
            return await self.client.request(
                method,
                url,
                params=params,
                content=content,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.HTTPError as e:
            logger.error(f"Blockfrost API call failed: {endpoint} - {e}")
            raise NetworkError(f"Blockfrost request failed: {e}") from e

    async def _get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._api_call("GET", endpoint, params=params)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Blockfrost {endpoint} returned {response.status_code}: {message}")
            raise NetworkError(f"Blockfrost returned HTTP {response.status_code}: {message}")
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Blockfrost {endpoint} returned invalid JSON: {e}") from e

    async def get_utxos(self, address: str) -> list[UTxO]:
        utxos: list[UTxO] = []
        page = 1

        while True:
            response = await self._api_call(
                "GET",
                f"addresses/{address}/utxos",
                params={"page": page, "count": PAGE_SIZE},
            )
            # Blockfrost answers 404 for addresses that never appeared on chain
            if response.status_code == 404:
                break
            if response.status_code >= 400:
                message = _error_message(response)
                logger.error(f"Failed to fetch UTxOs for {address}: {message}")
                raise NetworkError(f"Blockfrost returned HTTP {response.status_code}: {message}")

            try:
                data = response.json()
                utxos.extend(UTxO.model_validate(item) for item in data)
            except (ValueError, TypeError) as e:
                raise NetworkError(f"Unexpected UTxO payload from Blockfrost: {e}") from e

            if len(data) < PAGE_SIZE:
                break
            page += 1

        logger.debug(f"Found {len(utxos)} UTxOs for address {address[:20]}...")
        return utxos

    async def get_protocol_parameters(self) -> ProtocolParameters:
        data = await self._get_json("epochs/latest/parameters")
        try:
            return ProtocolParameters.from_blockfrost(data)
        except (KeyError, ValidationError) as e:
            raise NetworkError(f"Unexpected protocol parameters payload: {e}") from e

    async def get_tip_slot(self) -> int:
        data = await self._get_json("blocks/latest")
        try:
            return int(data["slot"])
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Unexpected latest block payload: {e}") from e

    async def submit_transaction(self, tx_bytes: bytes) -> str:
        response = await self._api_call(
            "POST",
            "tx/submit",
            content=tx_bytes,
            headers={"Content-Type": "application/cbor"},
        )

        if response.status_code >= 500:
            message = _error_message(response)
            logger.error(f"Blockfrost submit failed ({response.status_code}): {message}")
            raise NetworkError(f"Blockfrost returned HTTP {response.status_code}: {message}")
        if response.status_code >= 400:
            reason = _error_message(response)
            logger.warning(f"Transaction rejected: {reason}")
            raise SubmissionRejected(reason)

        try:
            tx_hash = response.json()
        except ValueError as e:
            raise NetworkError(f"Unexpected submit response: {e}") from e
        if not isinstance(tx_hash, str) or not tx_hash.strip():
            raise NetworkError(f"Unexpected submit response: {tx_hash!r}")
        tx_hash = tx_hash.strip()
        logger.info(f"Submitted transaction {tx_hash}")
        return tx_hash

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
