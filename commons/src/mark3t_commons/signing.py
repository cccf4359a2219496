"""sr25519 signing of contract gateway requests.

A signed request carries ``Authorization: Signature ss58="<address>",sig="<hex>"``
where the signature covers ``METHOD\\nPATH\\nsha256(body)``.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable

SIGNATURE_SCHEME = "Signature"


def build_canonical_request(method: str, path_qs: str, body: bytes) -> bytes:
    lines = ((method or "GET").upper(), path_qs or "/", hashlib.sha256(body).hexdigest())
    return "\n".join(lines).encode("utf-8")


def build_authorization_header(
    *,
    address: str,
    sign: Callable[[bytes], bytes],
    method: str,
    path_qs: str,
    body: bytes,
) -> str:
    """Sign the canonical form of a request with ``sign`` and render the header value."""

    signature = bytes(sign(build_canonical_request(method, path_qs, body)))
    return f'{SIGNATURE_SCHEME} ss58="{address}",sig="{signature.hex()}"'


__all__ = [
    "SIGNATURE_SCHEME",
    "build_authorization_header",
    "build_canonical_request",
]
