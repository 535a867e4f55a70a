"""
In-process ed25519 signer for development and tests.

Holds a single payment key derived from a 32-byte seed and controls the matching
enterprise address. Production signing goes through a wallet extension instead.
"""

from __future__ import annotations

from collections.abc import Callable

from adacore import cbor
from adacore.address import encode_address, enterprise_address
from adacore.cbor import CBORDecodeError
from adacore.crypto import blake2b_224, blake2b_256, keypair_from_seed, sign_message
from adacore.exceptions import SignerUnavailable, SigningRejected
from adacore.models import NetworkType
from adacore.transaction import TransactionBody, VkeyWitness, WitnessSet
from loguru import logger

from adawallet.signers.base import SignerHandle, SigningAgent


class LocalSignerHandle(SignerHandle):
    def __init__(self, agent: LocalSigningAgent):
        self.agent = agent
        self.closed = False

    async def get_change_address(self) -> str:
        return self.agent.address

    async def sign_tx(self, tx_hex: str, partial_sign: bool = False) -> str:
        if self.closed:
            raise SignerUnavailable("Signer handle was closed")

        try:
            items = cbor.split_array(bytes.fromhex(tx_hex))
        except (ValueError, CBORDecodeError) as e:
            raise SigningRejected(f"Malformed transaction: {e}") from e
        if len(items) not in (3, 4):
            raise SigningRejected("Malformed transaction envelope")

        body_raw = items[0]
        if self.agent.approve is not None:
            body = TransactionBody.from_cbor(body_raw)
            if not self.agent.approve(body):
                logger.info(f"Signing of {body.tx_id} declined")
                raise SigningRejected("User declined to sign")

        signature = sign_message(blake2b_256(body_raw), self.agent.signing_key)
        witness = VkeyWitness(vkey=self.agent.verification_key, signature=signature)
        logger.debug(f"Signed transaction {blake2b_256(body_raw).hex()}")
        return WitnessSet(vkey_witnesses=(witness,)).to_cbor().hex()

    async def close(self) -> None:
        self.closed = True


class LocalSigningAgent(SigningAgent):
    """
    Signing agent backed by a key held in memory.

    Args:
        seed: 32-byte ed25519 seed
        network: Network the address is encoded for
        approve: Optional callback deciding whether to sign a body; declining raises
            SigningRejected like a user pressing "cancel" in an extension
    """

    name = "local"

    def __init__(
        self,
        seed: bytes,
        network: NetworkType | str = NetworkType.PREVIEW,
        approve: Callable[[TransactionBody], bool] | None = None,
    ):
        self.network = NetworkType(network)
        self.verification_key, self.signing_key = keypair_from_seed(seed)
        self.approve = approve

    @classmethod
    def from_hex(cls, seed_hex: str, **kwargs) -> LocalSigningAgent:
        return cls(bytes.fromhex(seed_hex), **kwargs)

    @property
    def key_hash(self) -> bytes:
        return blake2b_224(self.verification_key)

    @property
    def address(self) -> str:
        return encode_address(enterprise_address(self.key_hash, self.network.network_id))

    async def enable(self) -> SignerHandle:
        logger.info(f"Enabled local signer for {self.address}")
        return LocalSignerHandle(self)
