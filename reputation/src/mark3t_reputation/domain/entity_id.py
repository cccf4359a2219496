"""Fixed-width entity identifiers and contract storage keys.

Subjects are addressed by a plain integer id everywhere in the client. The
32-byte :class:`EntityId` only appears at the storage boundary, where it is
derived from the decimal form of the subject id.

Codes longer than 32 UTF-8 bytes are truncated, so two such codes sharing the
same first 32 bytes map to the same identifier. Codes ending in NUL bytes are
indistinguishable from their unpadded prefix.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass

ENTITY_ID_SIZE = 32


@dataclass(frozen=True, slots=True)
class EntityId:
    """32-byte identifier as stored by the reputation contract."""

    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, bytes):
            raise TypeError("entity id value must be bytes")
        if len(self.value) != ENTITY_ID_SIZE:
            raise ValueError(f"entity id must be exactly {ENTITY_ID_SIZE} bytes, got {len(self.value)}")

    @classmethod
    def from_code(cls, code: str) -> EntityId:
        return encode_entity_id(code)

    @classmethod
    def from_subject_id(cls, subject_id: int) -> EntityId:
        if isinstance(subject_id, bool) or not isinstance(subject_id, int):
            raise TypeError("subject_id must be an integer")
        if subject_id < 0:
            raise ValueError("subject_id must be non-negative")
        return encode_entity_id(str(subject_id))

    @classmethod
    def from_hex(cls, value: str) -> EntityId:
        raw = value[2:] if value.startswith(("0x", "0X")) else value
        return cls(bytes.fromhex(raw))

    def code(self) -> str:
        """Return the code this identifier was encoded from, without padding."""
        try:
            return self.value.rstrip(b"\x00").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("entity id does not hold a UTF-8 code") from exc

    def to_subject_id(self) -> int:
        code = self.code()
        if not code or not code.isascii() or not code.isdigit():
            raise ValueError(f"entity id code {code!r} is not a subject id")
        return int(code)

    def hex(self) -> str:
        return "0x" + self.value.hex()

    def __str__(self) -> str:
        return self.hex()


def encode_entity_id(code: str) -> EntityId:
    """Encode ``code`` into a zero-padded 32-byte identifier."""
    raw = code.encode("utf-8")[:ENTITY_ID_SIZE]
    return EntityId(raw.ljust(ENTITY_ID_SIZE, b"\x00"))


EntityCodec = Callable[[str], EntityId]


# ----------------------------------------------------------------------
# storage keys


def root_key_for(field_path: str) -> int:
    """Return the 32-bit storage root key for a contract field path."""
    if not field_path.strip():
        raise ValueError("field_path must not be empty")
    digest = hashlib.blake2b(field_path.encode("utf-8"), digest_size=32).digest()
    return int.from_bytes(digest[:4], "big")


def derive_storage_key(root_key: int, *parts: bytes) -> bytes:
    """Concatenate the little-endian root key with already encoded key parts."""
    if not 0 <= root_key <= 0xFFFFFFFF:
        raise ValueError("root_key must fit in an unsigned 32-bit integer")
    return root_key.to_bytes(4, "little") + b"".join(parts)


def subject_index_key(root_key: int, entity_id: EntityId) -> bytes:
    """Key of the list of purchase references recorded for a subject."""
    return derive_storage_key(root_key, entity_id.value)


def record_key(root_key: int, entity_id: EntityId, purchase_ref: int) -> bytes:
    """Key of a single stored rating record."""
    if not 0 <= purchase_ref <= 0xFFFFFFFFFFFFFFFF:
        raise ValueError("purchase_ref must fit in an unsigned 64-bit integer")
    return derive_storage_key(root_key, entity_id.value, purchase_ref.to_bytes(8, "little"))


__all__ = [
    "ENTITY_ID_SIZE",
    "EntityCodec",
    "EntityId",
    "derive_storage_key",
    "encode_entity_id",
    "record_key",
    "root_key_for",
    "subject_index_key",
]
