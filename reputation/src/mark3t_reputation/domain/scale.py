"""SCALE decoding of the values returned by the contract storage path.

Layouts (little-endian, as the contract stores them):

* subject index: ``Vec<u64>`` of purchase references
* rating record: ``u64 purchase, u64 timestamp, u32 buyer, u32 subject,
  u32 article, u8 article_score, u8 shipping_score, u8 seller_score,
  Option<String> remark``
"""

from __future__ import annotations

import struct
from collections.abc import Sequence

from mark3t_reputation.domain.rating import RatingRecord

_RECORD_HEAD = struct.Struct("<QQIIIBBB")


class ScaleDecodeError(ValueError):
    """Raised when stored bytes do not match the expected layout."""


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise ScaleDecodeError(f"unexpected end of data at offset {self._offset} (wanted {size} bytes)")
        chunk = self._data[self._offset : end]
        self._offset = end
        return chunk

    def compact(self) -> int:
        first = self.take(1)[0]
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            return int.from_bytes(bytes([first]) + self.take(1), "little") >> 2
        if mode == 0b10:
            return int.from_bytes(bytes([first]) + self.take(3), "little") >> 2
        length = (first >> 2) + 4
        return int.from_bytes(self.take(length), "little")

    def finish(self) -> None:
        if self._offset != len(self._data):
            raise ScaleDecodeError(f"{len(self._data) - self._offset} trailing bytes")


def encode_compact(value: int) -> bytes:
    if value < 0:
        raise ValueError("compact integers must be non-negative")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")
    length = (value.bit_length() + 7) // 8
    if length > 67:
        raise ValueError("value too large for compact encoding")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def decode_purchase_index(data: bytes) -> tuple[int, ...]:
    reader = _Reader(data)
    count = reader.compact()
    refs = tuple(int.from_bytes(reader.take(8), "little") for _ in range(count))
    reader.finish()
    return refs


def encode_purchase_index(refs: Sequence[int]) -> bytes:
    return encode_compact(len(refs)) + b"".join(ref.to_bytes(8, "little") for ref in refs)


def decode_record(data: bytes) -> RatingRecord:
    reader = _Reader(data)
    (
        purchase_ref,
        timestamp,
        buyer_ref,
        subject_id,
        article_ref,
        article_score,
        shipping_score,
        communication_score,
    ) = _RECORD_HEAD.unpack(reader.take(_RECORD_HEAD.size))
    remark: str | None = None
    flag = reader.take(1)[0]
    if flag == 1:
        try:
            remark = reader.take(reader.compact()).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ScaleDecodeError("remark is not valid UTF-8") from exc
    elif flag != 0:
        raise ScaleDecodeError(f"invalid option flag {flag}")
    reader.finish()
    try:
        return RatingRecord(
            purchase_ref=purchase_ref,
            timestamp=timestamp,
            buyer_ref=buyer_ref,
            subject_id=subject_id,
            article_ref=article_ref,
            article_score=article_score,
            shipping_score=shipping_score,
            communication_score=communication_score,
            remark=remark,
        )
    except ValueError as exc:
        raise ScaleDecodeError(str(exc)) from exc


def encode_record(record: RatingRecord) -> bytes:
    head = _RECORD_HEAD.pack(
        record.purchase_ref,
        record.timestamp,
        record.buyer_ref,
        record.subject_id,
        record.article_ref,
        record.article_score,
        record.shipping_score,
        record.communication_score,
    )
    if record.remark is None:
        return head + b"\x00"
    remark = record.remark.encode("utf-8")
    return head + b"\x01" + encode_compact(len(remark)) + remark


__all__ = [
    "ScaleDecodeError",
    "decode_purchase_index",
    "decode_record",
    "encode_compact",
    "encode_purchase_index",
    "encode_record",
]
