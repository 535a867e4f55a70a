"""
Bridge to a wallet extension living in a browser page.

The page holding the extension attaches with its address, polls for signing requests,
runs ``signTx`` in the extension and posts the answer back with the request token:

    server                               page
      | sign_tx -> token, await future     |
      |  <--------- GET /signer/requests --|
      |  <-- POST /signer/requests/{token} |  (witness set hex or CIP-30 error)
      | future resolved                    |

A request whose caller went away is dropped; answering it afterwards is a no-op.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

from adacore.address import AddressError, to_bech32
from adacore.exceptions import SignerUnavailable
from loguru import logger

from adawallet.signers.base import SignerHandle, SigningAgent, error_from_cip30


@dataclass
class SigningRequest:
    """An outstanding request waiting for the page's answer."""

    token: str
    tx_hex: str
    partial_sign: bool
    future: asyncio.Future[str]
    owner: BridgeSignerHandle | None = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "txHex": self.tx_hex,
            "partialSign": self.partial_sign,
            "createdAt": self.created_at,
        }


class BridgeSignerHandle(SignerHandle):
    def __init__(self, agent: BrowserBridgeAgent, address: str):
        self.agent = agent
        self.address = address
        self.closed = False

    async def get_change_address(self) -> str:
        return self.address

    async def sign_tx(self, tx_hex: str, partial_sign: bool = False) -> str:
        if self.closed:
            raise SignerUnavailable("Signer handle was closed")
        return await self.agent.request_signature(tx_hex, partial_sign, owner=self)

    async def close(self) -> None:
        """Close the handle; its outstanding requests fail with SignerUnavailable."""
        self.closed = True
        self.agent.fail_requests(SignerUnavailable("Signer handle was closed"), owner=self)


class BrowserBridgeAgent(SigningAgent):
    """Signing agent whose signatures come from a browser page over HTTP."""

    name = "browser"

    def __init__(self) -> None:
        self.address: str | None = None
        self._requests: dict[str, SigningRequest] = {}

    @property
    def attached(self) -> bool:
        return self.address is not None

    def attach(self, address: str) -> str:
        """
        Register the page's wallet address (hex from ``getChangeAddress`` or bech32).

        Returns:
            The address in bech32
        """
        try:
            bech = to_bech32(address)
        except AddressError as e:
            raise SignerUnavailable(f"Extension reported an invalid address: {e}") from e
        self.address = bech
        logger.info(f"Browser wallet attached: {bech}")
        return bech

    def detach(self) -> None:
        """Forget the page; outstanding requests fail with SignerUnavailable."""
        self.address = None
        self.fail_requests(SignerUnavailable("Browser wallet detached"))
        logger.info("Browser wallet detached")

    def fail_requests(
        self, error: Exception, owner: BridgeSignerHandle | None = None
    ) -> int:
        """
        Fail outstanding requests, all of them or only those issued through ``owner``.

        Returns:
            Number of requests failed
        """
        failed = 0
        for token, request in list(self._requests.items()):
            if owner is not None and request.owner is not owner:
                continue
            self._requests.pop(token, None)
            if not request.future.done():
                request.future.set_exception(error)
                failed += 1
        if failed:
            logger.info(f"Failed {failed} outstanding signing request(s): {error}")
        return failed

    async def enable(self) -> SignerHandle:
        if self.address is None:
            raise SignerUnavailable("No browser wallet is attached")
        return BridgeSignerHandle(self, self.address)

    async def request_signature(
        self,
        tx_hex: str,
        partial_sign: bool = False,
        owner: BridgeSignerHandle | None = None,
    ) -> str:
        """Issue a request token and wait for the page to answer it."""
        if self.address is None:
            raise SignerUnavailable("No browser wallet is attached")

        token = secrets.token_hex(16)
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._requests[token] = SigningRequest(
            token=token,
            tx_hex=tx_hex,
            partial_sign=partial_sign,
            future=future,
            owner=owner,
        )
        logger.debug(f"Signing request {token} issued")

        try:
            return await future
        finally:
            # Cancelled or answered: either way the token is spent
            self._requests.pop(token, None)

    def pending(self) -> list[SigningRequest]:
        return [r for r in self._requests.values() if not r.future.done()]

    def resolve(
        self,
        token: str,
        witness_hex: str | None = None,
        error: dict[str, Any] | str | None = None,
    ) -> bool:
        """
        Answer a signing request.

        Returns:
            False if the token is unknown, already answered or abandoned by its caller
        """
        request = self._requests.get(token)
        if request is None or request.future.done():
            logger.debug(f"Ignoring answer for unknown or abandoned request {token}")
            return False

        if error is not None:
            request.future.set_exception(error_from_cip30(error))
        elif witness_hex:
            request.future.set_result(witness_hex)
        else:
            request.future.set_exception(SignerUnavailable("Empty answer from browser wallet"))
        return True
