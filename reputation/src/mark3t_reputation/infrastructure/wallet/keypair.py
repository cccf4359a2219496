"""sr25519 signer backed by a bittensor keypair."""

from __future__ import annotations

from dataclasses import dataclass

import bittensor as bt

from mark3t_commons.config.signer import SignerSettings
from mark3t_reputation.application.ports.signer import SignerPort


@dataclass(frozen=True, slots=True)
class KeypairSigner(SignerPort):
    """Exposes only the address and signing function of a keypair."""

    keypair: bt.Keypair

    @property
    def address(self) -> str:
        return str(self.keypair.ss58_address)

    def sign(self, data: bytes) -> bytes:
        return bytes(self.keypair.sign(data))


def create_signer(settings: SignerSettings) -> KeypairSigner | None:
    """Build a signer from a mnemonic or a dev URI such as ``//Alice``.

    Returns ``None`` when neither is configured; callers treat that as a
    disconnected wallet.
    """
    mnemonic = settings.mnemonic_value
    if mnemonic is not None:
        return KeypairSigner(bt.Keypair.create_from_mnemonic(mnemonic))
    if settings.uri is not None:
        return KeypairSigner(bt.Keypair.create_from_uri(settings.uri))
    return None


__all__ = ["KeypairSigner", "create_signer"]
