"""HTTP contract gateway implementing the reputation ledger port."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from mark3t_commons.signing import build_authorization_header
from mark3t_reputation.application.parsers import (
    parse_query_payload,
    parse_send_payload,
    parse_storage_payload,
)
from mark3t_reputation.application.ports.ledger import QueryResult, ReputationLedgerPort, SendReceipt
from mark3t_reputation.application.ports.signer import SignerPort
from mark3t_reputation.domain.exceptions import (
    ConnectivityError,
    MalformedResponseError,
    QueryUnavailableError,
    RemoteRejection,
)

logger = logging.getLogger("mark3t_reputation.ledger")

_UNAVAILABLE_STATUSES = frozenset(
    {
        httpx.codes.BAD_GATEWAY,
        httpx.codes.SERVICE_UNAVAILABLE,
        httpx.codes.GATEWAY_TIMEOUT,
    }
)


class HttpContractGateway(ReputationLedgerPort):
    """Async client for a contract gateway fronting the reputation contract."""

    def __init__(
        self,
        *,
        base_url: str,
        contract_address: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("gateway base_url must not be empty")
        if not contract_address:
            raise ValueError("contract_address must not be empty")
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
        )
        self._contract_path = f"/v1/contracts/{contract_address}"

    # ------------------------------------------------------------------
    # port implementation

    async def query(
        self,
        method: str,
        *,
        origin: str,
        data: Mapping[str, object] | None = None,
    ) -> QueryResult:
        path = f"{self._contract_path}/query"
        body = _encode_body({"method": method, "origin": origin, "data": dict(data or {})})
        response = await self._request("POST", path, body=body, operation=method)
        if response.status_code == httpx.codes.NOT_FOUND and _error_code(response) == "unknown_method":
            raise QueryUnavailableError(f"contract does not expose query {method!r}")
        self._raise_for_status(response, method)
        parsed = parse_query_payload(_json(response))
        inner = parsed.value or {}
        return QueryResult(success=parsed.success, response=inner.get("response"), error=parsed.error)

    async def send(
        self,
        method: str,
        *,
        origin: str,
        data: Mapping[str, object],
        signer: SignerPort,
    ) -> SendReceipt:
        path = f"{self._contract_path}/send"
        body = _encode_body({"method": method, "origin": origin, "data": dict(data)})
        try:
            authorization = build_authorization_header(
                address=signer.address,
                sign=signer.sign,
                method="POST",
                path_qs=path,
                body=body,
            )
        except Exception as exc:
            logger.warning(
                "signer refused to sign ledger request",
                extra={"data": {"operation": method, "error": str(exc)}},
            )
            raise RemoteRejection(f"signer refused to sign {method!r}: {exc}") from exc
        response = await self._request(
            "POST",
            path,
            body=body,
            operation=method,
            headers={"Authorization": authorization},
        )
        self._raise_for_status(response, method)
        parsed = parse_send_payload(_json(response))
        return SendReceipt(ok=parsed.ok, tx_hash=parsed.tx_hash, dispatch_error=parsed.dispatch_error)

    async def read_storage(self, key: bytes) -> bytes | None:
        path = f"{self._contract_path}/storage/0x{key.hex()}"
        response = await self._request("GET", path, operation="read_storage")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        self._raise_for_status(response, "read_storage")
        return parse_storage_payload(_json(response))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # internal

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = {"Accept": "application/json"}
        if body:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})
        tracer = trace.get_tracer("mark3t_reputation.ledger")
        with tracer.start_as_current_span(
            "ledger.request",
            kind=SpanKind.CLIENT,
            attributes={
                "http.method": method,
                "http.target": path,
                "ledger.operation": operation,
            },
        ) as span:
            started = time.perf_counter()
            try:
                response = await self._client.request(method, path, content=body, headers=request_headers)
            except httpx.TimeoutException as exc:
                span.set_status(Status(StatusCode.ERROR, "timeout"))
                logger.warning(
                    "ledger request timed out",
                    extra={"data": {"operation": operation, "path": path}},
                )
                raise ConnectivityError(f"ledger request {operation!r} timed out") from exc
            except httpx.TransportError as exc:
                span.set_status(Status(StatusCode.ERROR, "transport_error"))
                logger.warning(
                    "ledger unreachable",
                    extra={"data": {"operation": operation, "path": path, "error": str(exc)}},
                )
                raise ConnectivityError(f"ledger unreachable during {operation!r}: {exc}") from exc
            except httpx.RequestError as exc:
                span.set_status(Status(StatusCode.ERROR, "request_error"))
                logger.warning(
                    "ledger request failed",
                    extra={"data": {"operation": operation, "path": path, "error_type": type(exc).__name__}},
                )
                raise ConnectivityError(f"ledger request {operation!r} failed: {exc}") from exc
            span.set_attribute("http.status_code", response.status_code)
            logger.debug(
                "ledger request complete",
                extra={
                    "data": {
                        "operation": operation,
                        "status": response.status_code,
                        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                    }
                },
            )
            return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.status_code == httpx.codes.OK:
            return
        detail = _error_detail(response)
        if response.status_code in _UNAVAILABLE_STATUSES:
            raise ConnectivityError(f"ledger unavailable ({response.status_code}) during {operation!r}: {detail}")
        raise RemoteRejection(f"ledger rejected {operation!r} ({response.status_code}): {detail}")


def _encode_body(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError("ledger response is not valid JSON") from exc


def _error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        code = payload.get("error")
        return code if isinstance(code, str) else None
    return None


def _error_detail(response: httpx.Response, *, limit: int = 300) -> str:
    text = (response.text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


__all__ = ["HttpContractGateway"]
