from __future__ import annotations

import hashlib
import re

import bittensor as bt
import pytest

from mark3t_commons.signing import build_authorization_header, build_canonical_request

_HEADER_PATTERN = re.compile(r'^Signature\s+ss58="(?P<ss58>[^"]+)",\s*sig="(?P<sig>[0-9a-f]+)"$')


def _keypair() -> bt.Keypair:
    return bt.Keypair.create_from_mnemonic(bt.Keypair.generate_mnemonic())


def test_canonical_request_joins_method_path_and_body_hash() -> None:
    canonical = build_canonical_request("post", "/v1/contracts/0xabc/send", b"{}")

    assert canonical == f"POST\n/v1/contracts/0xabc/send\n{hashlib.sha256(b'{}').hexdigest()}".encode()
    assert build_canonical_request("", "", b"").startswith(b"GET\n/\n")


def test_authorization_header_carries_verifiable_signature() -> None:
    keypair = _keypair()
    body = b'{"method":"submit_rating"}'

    header = build_authorization_header(
        address=keypair.ss58_address,
        sign=keypair.sign,
        method="POST",
        path_qs="/v1/contracts/0xabc/send",
        body=body,
    )

    match = _HEADER_PATTERN.match(header)
    assert match is not None
    assert match.group("ss58") == keypair.ss58_address
    signature = bytes.fromhex(match.group("sig"))
    assert keypair.verify(build_canonical_request("POST", "/v1/contracts/0xabc/send", body), signature)
    assert not keypair.verify(build_canonical_request("POST", "/v1/contracts/0xabc/send", b"tampered"), signature)


def test_signer_errors_propagate() -> None:
    def refuse(_: bytes) -> bytes:
        raise RuntimeError("user cancelled signing")

    with pytest.raises(RuntimeError, match="cancelled"):
        build_authorization_header(address="5Signer", sign=refuse, method="POST", path_qs="/send", body=b"")
