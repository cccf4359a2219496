"""Per-pipeline client configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from mark3t_reputation.domain.entity_id import EntityCodec, encode_entity_id, root_key_for

DEFAULT_INDEX_FIELD = "mark3t_rep::Mark3tRep::transaction_per_entity"
DEFAULT_RECORDS_FIELD = "mark3t_rep::Mark3tRep::ratings_per_transaction"


@dataclass(frozen=True, slots=True)
class ReputationClientConfig:
    """Connection and encoding details handed to each pipeline at construction."""

    endpoint: str
    contract_address: str
    query_origin: str = ""
    codec: EntityCodec = field(default=encode_entity_id)
    timeout_seconds: float = 10.0
    index_root_key: int = field(default_factory=lambda: root_key_for(DEFAULT_INDEX_FIELD))
    records_root_key: int = field(default_factory=lambda: root_key_for(DEFAULT_RECORDS_FIELD))

    def __post_init__(self) -> None:
        if not self.endpoint.strip():
            raise ValueError("endpoint must not be empty")
        if not self.contract_address.strip():
            raise ValueError("contract_address must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


__all__ = ["DEFAULT_INDEX_FIELD", "DEFAULT_RECORDS_FIELD", "ReputationClientConfig"]
