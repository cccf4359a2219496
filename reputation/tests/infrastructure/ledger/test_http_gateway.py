from __future__ import annotations

import json
import re
from collections.abc import Callable

import bittensor as bt
import httpx
import pytest

from mark3t_commons.signing import build_canonical_request
from mark3t_reputation.application.ports.ledger import GET_ALL_RATINGS, GET_SUBJECT_SCORE, SUBMIT_RATING
from mark3t_reputation.domain.exceptions import (
    ConnectivityError,
    MalformedResponseError,
    QueryUnavailableError,
    RemoteRejection,
)
from mark3t_reputation.infrastructure.ledger.http import HttpContractGateway
from mark3t_reputation.infrastructure.wallet.keypair import KeypairSigner

pytestmark = pytest.mark.anyio("asyncio")

_BASE_URL = "https://ledger.example"
_CONTRACT = "0xabc"
_HEADER_PATTERN = re.compile(r'^Signature\s+ss58="(?P<ss58>[^"]+)",\s*sig="(?P<sig>[0-9a-f]+)"$')


def _assert_signed(request: httpx.Request, keypair: bt.Keypair) -> None:
    header = request.headers.get("Authorization")
    assert header is not None
    match = _HEADER_PATTERN.match(header)
    assert match is not None
    assert match.group("ss58") == keypair.ss58_address
    canonical = build_canonical_request(request.method, request.url.raw_path.decode(), request.content or b"")
    assert keypair.verify(canonical, bytes.fromhex(match.group("sig")))


def _gateway(handler: Callable[[httpx.Request], httpx.Response]) -> HttpContractGateway:
    return HttpContractGateway(
        base_url=_BASE_URL,
        contract_address=_CONTRACT,
        client=httpx.AsyncClient(base_url=_BASE_URL, transport=httpx.MockTransport(handler)),
    )


async def test_query_posts_method_and_unwraps_response() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == f"/v1/contracts/{_CONTRACT}/query"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "value": {"response": [{"purchase_id": 1}]}})

    gateway = _gateway(handler)
    try:
        result = await gateway.query(GET_ALL_RATINGS, origin="5Origin")
    finally:
        await gateway.aclose()

    assert result.success
    assert result.response == [{"purchase_id": 1}]
    assert seen == [{"method": GET_ALL_RATINGS, "origin": "5Origin", "data": {}}]


async def test_query_passes_contract_failure_through() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "ContractTrapped"})

    gateway = _gateway(handler)
    result = await gateway.query(GET_SUBJECT_SCORE, origin="5Origin", data={"subject_id": 7})

    assert not result.success
    assert result.response is None
    assert result.error == "ContractTrapped"


async def test_unknown_query_method_raises_query_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "unknown_method"})

    with pytest.raises(QueryUnavailableError):
        await _gateway(handler).query("get_ratings_for_subject", origin="5Origin", data={"subject_id": 7})


async def test_send_signs_request_with_signer() -> None:
    keypair = bt.Keypair.create_from_mnemonic(bt.Keypair.generate_mnemonic())
    signer = KeypairSigner(keypair)

    def handler(request: httpx.Request) -> httpx.Response:
        _assert_signed(request, keypair)
        payload = json.loads(request.content)
        assert payload["method"] == SUBMIT_RATING
        assert payload["origin"] == keypair.ss58_address
        assert payload["data"] == {"rating": {"subject_id": 7}}
        return httpx.Response(200, json={"ok": True, "tx_hash": "0xabc123"})

    receipt = await _gateway(handler).send(
        SUBMIT_RATING,
        origin=signer.address,
        data={"rating": {"subject_id": 7}},
        signer=signer,
    )

    assert receipt.ok
    assert receipt.tx_hash == "0xabc123"


async def test_send_reports_dispatch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "dispatch_error": "Module(ContractReverted)"})

    class _Signer:
        address = "5Signer"

        def sign(self, data: bytes) -> bytes:
            return b"\x00" * 64

    receipt = await _gateway(handler).send(SUBMIT_RATING, origin="5Signer", data={}, signer=_Signer())

    assert not receipt.ok
    assert receipt.dispatch_error == "Module(ContractReverted)"


async def test_read_storage_decodes_hex_and_maps_404_to_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/storage/0x0102"):
            return httpx.Response(200, json={"value": "0xdeadbeef"})
        return httpx.Response(404, json={"error": "not_found"})

    gateway = _gateway(handler)

    assert await gateway.read_storage(b"\x01\x02") == b"\xde\xad\xbe\xef"
    assert await gateway.read_storage(b"\x03") is None


@pytest.mark.parametrize("status", [502, 503, 504])
async def test_gateway_outage_is_connectivity_error(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="down")

    with pytest.raises(ConnectivityError):
        await _gateway(handler).query(GET_ALL_RATINGS, origin="5Origin")


async def test_other_error_status_is_remote_rejection() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="bad origin")

    with pytest.raises(RemoteRejection, match="bad origin"):
        await _gateway(handler).query(GET_ALL_RATINGS, origin="5Origin")


async def test_timeout_is_connectivity_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ConnectivityError, match="timed out"):
        await _gateway(handler).query(GET_ALL_RATINGS, origin="5Origin")


async def test_unreachable_ledger_is_connectivity_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ConnectivityError, match="unreachable"):
        await _gateway(handler).read_storage(b"\x01")


async def test_non_json_body_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(MalformedResponseError):
        await _gateway(handler).query(GET_ALL_RATINGS, origin="5Origin")


def test_gateway_requires_base_url_and_contract() -> None:
    with pytest.raises(ValueError):
        HttpContractGateway(base_url="", contract_address=_CONTRACT)
    with pytest.raises(ValueError):
        HttpContractGateway(base_url=_BASE_URL, contract_address="")


async def test_signer_failure_is_remote_rejection_without_request() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True, "tx_hash": "0x1"})

    class _RefusingSigner:
        address = "5Signer"

        def sign(self, data: bytes) -> bytes:
            raise RuntimeError("user cancelled signing")

    with pytest.raises(RemoteRejection, match="user cancelled signing"):
        await _gateway(handler).send(SUBMIT_RATING, origin="5Signer", data={}, signer=_RefusingSigner())

    assert requests == []


async def test_undecodable_response_is_connectivity_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("corrupt gzip stream", request=request)

    with pytest.raises(ConnectivityError, match="corrupt gzip stream"):
        await _gateway(handler).query(GET_ALL_RATINGS, origin="5Origin")


async def test_redirect_loop_is_connectivity_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

    with pytest.raises(ConnectivityError):
        await _gateway(handler).read_storage(b"\x01")
