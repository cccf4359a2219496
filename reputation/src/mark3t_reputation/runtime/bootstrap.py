"""Wire reputation pipelines from environment settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mark3t_commons.config.ledger import LedgerSettings
from mark3t_commons.config.observability import ObservabilitySettings
from mark3t_commons.config.signer import SignerSettings
from mark3t_commons.observability.tracing import configure_tracing
from mark3t_reputation.application.dto.config import ReputationClientConfig
from mark3t_reputation.application.ports.labels import LabelResolver
from mark3t_reputation.application.ports.ledger import ReputationLedgerPort
from mark3t_reputation.application.ports.signer import SignerPort
from mark3t_reputation.application.query_ratings import RatingQueryService
from mark3t_reputation.application.submit_rating import RatingSubmissionService
from mark3t_reputation.domain.entity_id import root_key_for
from mark3t_reputation.infrastructure.ledger.http import HttpContractGateway
from mark3t_reputation.infrastructure.observability.logging import init_logging
from mark3t_reputation.infrastructure.state.label_table import InMemoryLabelTable
from mark3t_reputation.infrastructure.wallet.keypair import create_signer

logger = logging.getLogger("mark3t_reputation.runtime")


@dataclass(slots=True)
class ReputationRuntime:
    """Pipelines sharing one ledger client and one label table."""

    config: ReputationClientConfig
    ledger: ReputationLedgerPort
    labels: LabelResolver
    signer: SignerPort | None
    query: RatingQueryService
    submission: RatingSubmissionService

    async def aclose(self) -> None:
        await self.ledger.aclose()


def client_config_from_settings(
    settings: LedgerSettings,
    *,
    signer: SignerPort | None = None,
) -> ReputationClientConfig:
    """Translate env settings into the per-pipeline configuration object.

    Queries run on behalf of ``LEDGER_QUERY_ORIGIN`` or, when unset, the signer.
    """
    origin = settings.query_origin.strip() or (signer.address if signer is not None else "")
    return ReputationClientConfig(
        endpoint=settings.gateway_url,
        contract_address=settings.contract_address,
        query_origin=origin,
        timeout_seconds=settings.timeout_seconds,
        index_root_key=root_key_for(settings.index_field),
        records_root_key=root_key_for(settings.records_field),
    )


def build_runtime(
    *,
    ledger_settings: LedgerSettings | None = None,
    signer_settings: SignerSettings | None = None,
    ledger: ReputationLedgerPort | None = None,
    labels: LabelResolver | None = None,
) -> ReputationRuntime:
    ledger_settings = ledger_settings or LedgerSettings()
    signer_settings = signer_settings or SignerSettings()
    signer = create_signer(signer_settings)
    config = client_config_from_settings(ledger_settings, signer=signer)
    resolved_ledger = ledger or HttpContractGateway(
        base_url=config.endpoint,
        contract_address=config.contract_address,
        timeout=config.timeout_seconds,
    )
    resolved_labels = labels or InMemoryLabelTable()
    logger.debug(
        "built reputation runtime",
        extra={
            "data": {
                "endpoint": config.endpoint,
                "contract": config.contract_address,
                "signer_configured": signer is not None,
            }
        },
    )
    return ReputationRuntime(
        config=config,
        ledger=resolved_ledger,
        labels=resolved_labels,
        signer=signer,
        query=RatingQueryService(ledger=resolved_ledger, config=config, label_resolver=resolved_labels),
        submission=RatingSubmissionService(ledger=resolved_ledger, config=config),
    )


def init_observability(settings: ObservabilitySettings | None = None) -> None:
    settings = settings or ObservabilitySettings()
    init_logging(json_output=settings.log_json)
    configure_tracing(service_name=settings.service_name)


__all__ = [
    "ReputationRuntime",
    "build_runtime",
    "client_config_from_settings",
    "init_observability",
]
