from __future__ import annotations

import pytest

from mark3t_reputation.domain.entity_id import (
    ENTITY_ID_SIZE,
    EntityId,
    derive_storage_key,
    encode_entity_id,
    record_key,
    root_key_for,
    subject_index_key,
)


@pytest.mark.parametrize("code", ["", "7", "seller-42", "ümlaut shop", "A" * ENTITY_ID_SIZE])
def test_encode_is_fixed_width_and_deterministic(code: str) -> None:
    first = encode_entity_id(code)
    second = encode_entity_id(code)

    assert len(first.value) == ENTITY_ID_SIZE
    assert first == second
    assert first.value.startswith(code.encode("utf-8"))


def test_encode_truncates_long_codes_to_first_32_bytes() -> None:
    code = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

    assert encode_entity_id(code) == encode_entity_id(code[:32])
    assert encode_entity_id(code).value == code[:32].encode()


def test_encode_pads_with_zero_bytes() -> None:
    entity_id = encode_entity_id("abc")

    assert entity_id.value == b"abc" + b"\x00" * 29
    assert entity_id.code() == "abc"


def test_subject_id_round_trip() -> None:
    entity_id = EntityId.from_subject_id(7)

    assert entity_id == encode_entity_id("7")
    assert entity_id.to_subject_id() == 7


@pytest.mark.parametrize("value", [True, "7", 7.0])
def test_from_subject_id_rejects_non_integers(value: object) -> None:
    with pytest.raises(TypeError):
        EntityId.from_subject_id(value)  # type: ignore[arg-type]


def test_from_subject_id_rejects_negative_ids() -> None:
    with pytest.raises(ValueError):
        EntityId.from_subject_id(-1)


def test_to_subject_id_rejects_non_numeric_codes() -> None:
    with pytest.raises(ValueError, match="not a subject id"):
        encode_entity_id("shop").to_subject_id()


def test_entity_id_requires_exactly_32_bytes() -> None:
    with pytest.raises(ValueError):
        EntityId(b"short")


def test_hex_round_trip() -> None:
    entity_id = encode_entity_id("42")

    assert str(entity_id).startswith("0x3432")
    assert EntityId.from_hex(entity_id.hex()) == entity_id


def test_root_key_is_stable_and_field_specific() -> None:
    index = root_key_for("mark3t_rep::Mark3tRep::transaction_per_entity")
    records = root_key_for("mark3t_rep::Mark3tRep::ratings_per_transaction")

    assert index == root_key_for("mark3t_rep::Mark3tRep::transaction_per_entity")
    assert index != records
    assert 0 <= index <= 0xFFFFFFFF


def test_storage_keys_prefix_root_key_little_endian() -> None:
    entity_id = EntityId.from_subject_id(7)

    assert derive_storage_key(0x01020304, b"\xff") == b"\x04\x03\x02\x01\xff"
    assert subject_index_key(1, entity_id) == b"\x01\x00\x00\x00" + entity_id.value
    assert record_key(1, entity_id, 2) == b"\x01\x00\x00\x00" + entity_id.value + (2).to_bytes(8, "little")


def test_storage_key_rejects_out_of_range_root() -> None:
    with pytest.raises(ValueError):
        derive_storage_key(1 << 32)
