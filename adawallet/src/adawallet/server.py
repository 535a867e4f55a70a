"""
HTTP API for the wallet service.

Serves address summaries and transaction submission to the web front end, and bridges
signing requests to the wallet extension in the user's browser page.
"""

from __future__ import annotations

import contextlib
import json
from collections.abc import Awaitable, Callable
from typing import Any

from adacore.address import AddressError, decode_address
from adacore.exceptions import (
    AlreadyConnected,
    BodyTooLarge,
    InsufficientFunds,
    NetworkError,
    NotConnected,
    OutputTooSmall,
    SignerUnavailable,
    SigningRejected,
    SubmissionRejected,
    ValueTooLarge,
    WalletError,
    WitnessMismatch,
)
from aiohttp import web
from loguru import logger
from pydantic import ValidationError

from adawallet.backends.base import ChainBackend
from adawallet.config import Settings
from adawallet.signers.bridge import BrowserBridgeAgent
from adawallet.wallet.payment import PaymentFlow
from adawallet.wallet.session import WalletSession
from adawallet.wallet.submission import SubmissionClient

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ERROR_STATUS: dict[type[WalletError], int] = {
    InsufficientFunds: 422,
    BodyTooLarge: 422,
    ValueTooLarge: 422,
    OutputTooSmall: 422,
    SigningRejected: 403,
    SignerUnavailable: 503,
    WitnessMismatch: 502,
    SubmissionRejected: 500,
    NetworkError: 502,
    AlreadyConnected: 409,
    NotConnected: 409,
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def error_response(error: WalletError) -> web.Response:
    status = ERROR_STATUS.get(type(error), 500)
    return web.json_response(
        {"error": error.user_message, "details": error.detail}, status=status
    )


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=204)
    else:
        response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn pipeline errors into ``{error, details}`` JSON responses."""
    try:
        return await handler(request)
    except WalletError as e:
        logger.warning(f"{request.method} {request.path} failed: {e.detail}")
        return error_response(e)
    except (ValidationError, AddressError) as e:
        return web.json_response({"error": "Invalid request", "details": str(e)}, status=400)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        data = await request.json()
    except json.JSONDecodeError as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Body must be JSON"}), content_type="application/json"
        ) from e
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Body must be a JSON object"}),
            content_type="application/json",
        )
    return data


class WalletApiServer:
    def __init__(
        self,
        settings: Settings,
        backend: ChainBackend,
        session: WalletSession | None = None,
        bridge: BrowserBridgeAgent | None = None,
    ) -> None:
        self.settings = settings
        self.backend = backend
        self.session = session or WalletSession()
        self.bridge = bridge or BrowserBridgeAgent()
        self.submission = SubmissionClient(backend)
        self.app = web.Application(middlewares=[cors_middleware, error_middleware])
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/wallet/{address}/summary", self._handle_summary)
        self.app.router.add_get("/wallet/{address}/utxos", self._handle_utxos)
        self.app.router.add_post("/tx/submit", self._handle_submit)

        self.app.router.add_get("/session", self._handle_session)
        self.app.router.add_post("/session/connect", self._handle_connect)
        self.app.router.add_post("/session/disconnect", self._handle_disconnect)

        self.app.router.add_post("/signer/attach", self._handle_attach)
        self.app.router.add_get("/signer/requests", self._handle_pending_requests)
        self.app.router.add_post("/signer/requests/{token}", self._handle_resolve_request)

        self.app.router.add_post("/payments", self._handle_payment)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "ok",
                "network": self.settings.blockfrost_network,
                "session": self.session.state.value,
            }
        )

    async def _handle_summary(self, request: web.Request) -> web.Response:
        address = request.match_info["address"]
        decode_address(address)
        summary = await self.backend.get_address_summary(address)
        return web.json_response(summary.model_dump(mode="json"))

    async def _handle_utxos(self, request: web.Request) -> web.Response:
        address = request.match_info["address"]
        decode_address(address)
        utxos = await self.backend.get_utxos(address)
        return web.json_response([u.model_dump(mode="json") for u in utxos])

    async def _handle_submit(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        tx_hex = data.get("signedTxHex")
        if not isinstance(tx_hex, str) or not tx_hex.strip():
            return web.json_response({"error": "signedTxHex is required"}, status=400)

        try:
            tx_hash = await self.submission.submit_hex(tx_hex)
        except ValueError as e:
            return web.json_response(
                {"error": "Invalid transaction", "details": str(e)}, status=400
            )
        return web.json_response({"txHash": tx_hash})

    async def _handle_session(self, _request: web.Request) -> web.Response:
        return web.json_response(self.session.to_dict())

    async def _handle_connect(self, _request: web.Request) -> web.Response:
        await self.session.connect(self.bridge)
        try:
            await self.session.refresh_balance(self.backend)
        except NetworkError as e:
            logger.warning(f"Could not fetch balance after connecting: {e}")
        return web.json_response(self.session.to_dict())

    async def _handle_disconnect(self, _request: web.Request) -> web.Response:
        await self.session.disconnect()
        return web.json_response(self.session.to_dict())

    async def _handle_attach(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        address = data.get("addressHex") or data.get("address")
        if not isinstance(address, str) or not address:
            return web.json_response({"error": "addressHex is required"}, status=400)
        try:
            bech = self.bridge.attach(address)
        except SignerUnavailable as e:
            return web.json_response({"error": "Invalid address", "details": e.detail}, status=400)
        return web.json_response({"address": bech})

    async def _handle_pending_requests(self, _request: web.Request) -> web.Response:
        return web.json_response([r.to_dict() for r in self.bridge.pending()])

    async def _handle_resolve_request(self, request: web.Request) -> web.Response:
        token = request.match_info["token"]
        data = await _read_json(request)
        witness_hex = data.get("witnessSetHex")
        error = data.get("error")
        if witness_hex is None and error is None:
            return web.json_response({"error": "witnessSetHex or error is required"}, status=400)

        if not self.bridge.resolve(token, witness_hex=witness_hex, error=error):
            return web.json_response(
                {"error": "Signing request is no longer pending"}, status=410
            )
        return web.json_response({"status": "ok"})

    async def _handle_payment(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        if "address" not in data or "lovelace" not in data:
            return web.json_response({"error": "address and lovelace are required"}, status=400)
        message = data.get("message")
        if message is not None and not isinstance(message, str):
            return web.json_response({"error": "message must be a string"}, status=400)

        flow = PaymentFlow(self.backend, self.session, self.settings)
        result = await flow.send(
            address=data["address"],
            lovelace=data["lovelace"],
            message=message,
        )
        return web.json_response(result.to_dict())

    async def start(self) -> None:
        logger.info(
            f"Starting wallet API on {self.settings.http_host}:{self.settings.http_port}"
        )

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.settings.http_host, self.settings.http_port)
        await self.site.start()

        logger.info(
            f"Wallet API running at http://{self.settings.http_host}:{self.settings.http_port}"
        )

    async def stop(self) -> None:
        logger.info("Stopping wallet API...")

        if self.bridge.attached:
            self.bridge.detach()
        await self.session.disconnect()

        if self.site:
            with contextlib.suppress(RuntimeError):
                await self.site.stop()
            self.site = None

        if self.runner:
            with contextlib.suppress(RuntimeError):
                await self.runner.cleanup()
            self.runner = None

        await self.backend.close()
        logger.info("Wallet API stopped")
