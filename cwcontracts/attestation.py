"""Binary wire format for batches of Pyth price attestations."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import BinaryIO, Union

from .pyth_account import PriceStatus, load_price_account

P2W_MAGIC = b"P2WH"
P2W_FORMAT_VER_MAJOR = 3
P2W_FORMAT_VER_MINOR = 0
# Number of header bytes that follow the hdr_size field.
P2W_FORMAT_HDR_SIZE = 1
PUBKEY_LEN = 32

_U16_MAX = 2**16 - 1
_U16 = struct.Struct(">H")
_ATTESTATION = struct.Struct(">32s32sqQiqQBIIqqqqQ")

Readable = Union[bytes, bytearray, memoryview, BinaryIO]


class AttestationError(Exception):
    """Raised when attestation data cannot be encoded or decoded."""


class PayloadId(IntEnum):
    """Decides the format of the bytes following the header."""

    PRICE_ATTESTATION = 1
    PRICE_BATCH_ATTESTATION = 2


class _Reader:
    def __init__(self, data: Readable) -> None:
        if isinstance(data, (bytes, bytearray, memoryview)):
            self._stream: BinaryIO = io.BytesIO(bytes(data))
        else:
            self._stream = data

    def read_exact(self, size: int) -> bytes:
        chunk = self._stream.read(size)
        if chunk is None or len(chunk) != size:
            raise AttestationError("failed to fill whole buffer")
        return bytes(chunk)

    def read_u16(self) -> int:
        return _U16.unpack(self.read_exact(_U16.size))[0]


def _pubkey(value: bytes) -> bytes:
    raw = bytes(value)
    if len(raw) != PUBKEY_LEN:
        raise ValueError("Slice must be the same length as a Pubkey")
    return raw


@dataclass(frozen=True)
class PriceAttestation:
    """A price observation; product_id and price_id together identify the feed."""

    product_id: bytes = bytes(PUBKEY_LEN)
    price_id: bytes = bytes(PUBKEY_LEN)
    price: int = 0
    conf: int = 0
    expo: int = 0
    ema_price: int = 0
    ema_conf: int = 0
    status: PriceStatus = PriceStatus.UNKNOWN
    num_publishers: int = 0
    max_num_publishers: int = 0
    attestation_time: int = 0
    publish_time: int = 0
    prev_publish_time: int = 0
    prev_price: int = 0
    prev_conf: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "product_id", _pubkey(self.product_id))
        object.__setattr__(self, "price_id", _pubkey(self.price_id))
        object.__setattr__(self, "status", PriceStatus(self.status))

    @classmethod
    def from_pyth_price_bytes(
        cls, price_id: bytes, attestation_time: int, value: bytes
    ) -> "PriceAttestation":
        """Build an attestation from the raw bytes of a Pyth price account."""
        account = load_price_account(value)
        return cls(
            product_id=account.prod.val,
            price_id=price_id,
            price=account.agg.price,
            conf=account.agg.conf,
            expo=account.expo,
            ema_price=account.ema_price.val,
            ema_conf=account.ema_conf.val % 2**64,
            status=account.agg.status,
            num_publishers=account.num_qt,
            max_num_publishers=account.num,
            attestation_time=attestation_time,
            publish_time=account.timestamp,
            prev_publish_time=account.prev_timestamp,
            prev_price=account.prev_price,
            prev_conf=account.prev_conf,
        )

    def serialize(self) -> bytes:
        """Encode the attestation in the big-endian wire format."""
        try:
            return _ATTESTATION.pack(
                self.product_id,
                self.price_id,
                self.price,
                self.conf,
                self.expo,
                self.ema_price,
                self.ema_conf,
                int(self.status),
                self.num_publishers,
                self.max_num_publishers,
                self.attestation_time,
                self.publish_time,
                self.prev_publish_time,
                self.prev_price,
                self.prev_conf,
            )
        except struct.error as exc:
            raise AttestationError(f"field out of range: {exc}") from None

    @classmethod
    def deserialize(cls, data: Readable) -> "PriceAttestation":
        """Decode one attestation from bytes or a binary stream."""
        (
            product_id, price_id, price, conf, expo, ema_price, ema_conf, status,
            num_publishers, max_num_publishers, attestation_time, publish_time,
            prev_publish_time, prev_price, prev_conf,
        ) = _ATTESTATION.unpack(_Reader(data).read_exact(_ATTESTATION.size))
        try:
            status = PriceStatus(status)
        except ValueError:
            raise AttestationError(f"Invalid status value {status}") from None
        return cls(
            product_id=product_id,
            price_id=price_id,
            price=price,
            conf=conf,
            expo=expo,
            ema_price=ema_price,
            ema_conf=ema_conf,
            status=status,
            num_publishers=num_publishers,
            max_num_publishers=max_num_publishers,
            attestation_time=attestation_time,
            publish_time=publish_time,
            prev_publish_time=prev_publish_time,
            prev_price=prev_price,
            prev_conf=prev_conf,
        )

    def to_dict(self) -> dict[str, object]:
        """JSON-friendly form: camelCase keys, hex ids, large numbers as strings."""
        return {
            "productId": self.product_id.hex(),
            "priceId": self.price_id.hex(),
            "price": str(self.price),
            "conf": str(self.conf),
            "expo": self.expo,
            "emaPrice": str(self.ema_price),
            "emaConf": str(self.ema_conf),
            "status": self.status.name.capitalize(),
            "numPublishers": self.num_publishers,
            "maxNumPublishers": self.max_num_publishers,
            "attestationTime": self.attestation_time,
            "publishTime": self.publish_time,
            "prevPublishTime": self.prev_publish_time,
            "prevPrice": str(self.prev_price),
            "prevConf": str(self.prev_conf),
        }


@dataclass(frozen=True)
class BatchPriceAttestation:
    """A batch of constant-size price attestations."""

    price_attestations: tuple[PriceAttestation, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "price_attestations", tuple(self.price_attestations))

    def serialize(self) -> bytes:
        """Encode the batch with its header."""
        count = len(self.price_attestations)
        if count > _U16_MAX:
            raise AttestationError(f"too many attestations: {count}")
        attestation_size = 0
        encoded = []
        for number, attestation in enumerate(self.price_attestations, start=1):
            serialized = attestation.serialize()
            if attestation_size and len(serialized) != attestation_size:
                raise AttestationError(
                    f"attestation {number} serializes to {len(serialized)} bytes, "
                    f"{attestation_size} expected"
                )
            attestation_size = attestation_size or len(serialized)
            encoded.append(serialized)
        header = b"".join(
            (
                P2W_MAGIC,
                _U16.pack(P2W_FORMAT_VER_MAJOR),
                _U16.pack(P2W_FORMAT_VER_MINOR),
                _U16.pack(P2W_FORMAT_HDR_SIZE),
                bytes([PayloadId.PRICE_BATCH_ATTESTATION]),
                _U16.pack(count),
                _U16.pack(attestation_size),
            )
        )
        return header + b"".join(encoded)

    @classmethod
    def deserialize(cls, data: Readable) -> "BatchPriceAttestation":
        """Decode a batch from bytes or a binary stream."""
        reader = _Reader(data)
        magic = reader.read_exact(len(P2W_MAGIC))
        if magic != P2W_MAGIC:
            raise AttestationError(
                f"Invalid magic {magic.hex().upper()}, expected {P2W_MAGIC.hex().upper()}"
            )
        major = reader.read_u16()
        if major != P2W_FORMAT_VER_MAJOR:
            raise AttestationError(
                f"Unsupported format major_version {major}, expected {P2W_FORMAT_VER_MAJOR}"
            )
        minor = reader.read_u16()
        if minor < P2W_FORMAT_VER_MINOR:
            raise AttestationError(
                f"Unsupported format minor_version {minor}, "
                f"expected {P2W_FORMAT_VER_MINOR} or more"
            )
        hdr_size = reader.read_u16()
        header = reader.read_exact(hdr_size)
        if not header:
            raise AttestationError("failed to fill whole buffer")
        if header[0] != PayloadId.PRICE_BATCH_ATTESTATION:
            raise AttestationError(
                f"Invalid Payload ID {header[0]}, "
                f"expected {int(PayloadId.PRICE_BATCH_ATTESTATION)}"
            )
        batch_len = reader.read_u16()
        attestation_size = reader.read_u16()
        attestations = []
        for number in range(1, batch_len + 1):
            chunk = reader.read_exact(attestation_size)
            try:
                attestations.append(PriceAttestation.deserialize(chunk))
            except AttestationError as exc:
                raise AttestationError(
                    f"PriceAttestation {number}/{batch_len}: {exc}"
                ) from None
        return cls(price_attestations=tuple(attestations))