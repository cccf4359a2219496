"""Signer capability consumed by the submission pipeline."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SignerPort(Protocol):
    """Address plus a signing function; key material stays with the wallet."""

    @property
    def address(self) -> str: ...

    def sign(self, data: bytes) -> bytes: ...


def is_signer(candidate: object) -> bool:
    """Return True when ``candidate`` satisfies the capability interface."""
    if not isinstance(candidate, SignerPort):
        return False
    address = candidate.address
    return isinstance(address, str) and bool(address.strip())


__all__ = ["SignerPort", "is_signer"]
