"""Decoding of Pyth oracle account data as stored on Solana."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator

MAGIC = 0xA1B2C3D4
VERSION_2 = 2
VERSION = VERSION_2
MAP_TABLE_SIZE = 640
PROD_ACCT_SIZE = 512
PROD_HDR_SIZE = 48
PROD_ATTR_SIZE = PROD_ACCT_SIZE - PROD_HDR_SIZE
PRICE_COMPONENTS = 32

# Maximum valid slot period before a price is considered to be stale.
VALID_SLOT_PERIOD = 25

_KEY_LEN = 32


class PythError(Exception):
    """Base class of errors raised while reading Pyth accounts."""

    default_message = "Pyth error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidAccountData(PythError):
    """Insufficient data or incorrect magic number."""

    default_message = "Failed to convert account into a Pyth account"


class BadVersionNumber(PythError):
    """The account was written by an unsupported program version."""

    default_message = "Incorrect version number for Pyth account"


class WrongAccountType(PythError):
    """The account holds a different kind of data than requested."""

    default_message = "Incorrect account type"


class AccountType(IntEnum):
    """What kind of data a Pyth account contains."""

    UNKNOWN = 0
    MAPPING = 1
    PRODUCT = 2
    PRICE = 3


class PriceStatus(IntEnum):
    """Availability status of a price feed."""

    UNKNOWN = 0
    TRADING = 1
    HALTED = 2
    AUCTION = 3


class CorpAction(IntEnum):
    """Status of any ongoing corporate action."""

    NO_CORP_ACT = 0


class PriceType(IntEnum):
    """Kind of price a price account carries."""

    UNKNOWN = 0
    PRICE = 1


@dataclass(frozen=True)
class AccKey:
    """Public key of a Solana account."""

    val: bytes = bytes(_KEY_LEN)

    def __post_init__(self) -> None:
        raw = bytes(self.val)
        if len(raw) != _KEY_LEN:
            raise ValueError(f"account key must be {_KEY_LEN} bytes, got {len(raw)}")
        object.__setattr__(self, "val", raw)

    def is_valid(self) -> bool:
        """A key is valid when it is not all zeros."""
        return any(self.val)


@dataclass(frozen=True)
class Rational:
    """A number held both as a value and as numer/denom."""

    val: int = 0
    numer: int = 0
    denom: int = 0


@dataclass(frozen=True)
class PriceInfo:
    """A price and confidence at a specific slot."""

    price: int = 0
    conf: int = 0
    status: PriceStatus = PriceStatus.UNKNOWN
    corp_act: CorpAction = CorpAction.NO_CORP_ACT
    pub_slot: int = 0


@dataclass(frozen=True)
class PriceComp:
    """The price contributed by one publisher."""

    publisher: AccKey = field(default_factory=AccKey)
    agg: PriceInfo = field(default_factory=PriceInfo)
    latest: PriceInfo = field(default_factory=PriceInfo)


@dataclass(frozen=True)
class MappingAccount:
    """A link of the list of all products on Pyth."""

    magic: int
    ver: int
    atype: int
    size: int
    num: int
    unused: int
    next: AccKey
    products: tuple[AccKey, ...]


@dataclass(frozen=True)
class ProductAccount:
    """Metadata of a single product, with its key/value attributes."""

    magic: int
    ver: int
    atype: int
    size: int
    px_acc: AccKey
    attr: bytes

    def attributes(self) -> Iterator[tuple[str, str]]:
        """Yield the (key, value) attribute pairs stored in the account."""
        rest = self.attr
        while rest:
            key, rest = _attr_str(rest)
            value, rest = _attr_str(rest)
            yield key, value


@dataclass(frozen=True)
class PriceAccount:
    """A continuously updating price feed for a product."""

    magic: int
    ver: int
    atype: int
    size: int
    ptype: PriceType
    expo: int
    num: int
    num_qt: int
    last_slot: int
    valid_slot: int
    ema_price: Rational
    ema_conf: Rational
    timestamp: int
    min_pub: int
    drv2: int
    drv3: int
    drv4: int
    prod: AccKey
    next: AccKey
    prev_slot: int
    prev_price: int
    prev_conf: int
    prev_timestamp: int
    agg: PriceInfo
    comp: tuple[PriceComp, ...]


_HEADER = struct.Struct("<III")
_MAPPING_HEAD = struct.Struct("<IIIIII32s")
_MAPPING_SIZE = _MAPPING_HEAD.size + MAP_TABLE_SIZE * _KEY_LEN
_PRODUCT = struct.Struct(f"<IIII32s{PROD_ATTR_SIZE}s")
_PRICE_HEAD = struct.Struct("<IIIIIiIIQQqqqqqqqBBHI32s32sQqQq")
_PRICE_INFO = struct.Struct("<qQIIQ")
_PRICE_COMP = struct.Struct("<32sqQIIQqQIIQ")
_PRICE_SIZE = _PRICE_HEAD.size + _PRICE_INFO.size + PRICE_COMPONENTS * _PRICE_COMP.size


def _attr_str(buf: bytes) -> tuple[str, bytes]:
    if not buf:
        return "", b""
    length = buf[0]
    if len(buf) < length + 1:
        raise InvalidAccountData("attribute runs past the end of the account")
    try:
        text = buf[1 : length + 1].decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidAccountData("attribute is not valid utf-8") from None
    return text, buf[length + 1 :]


def _enum(kind, value: int):
    try:
        return kind(value)
    except ValueError:
        raise InvalidAccountData(f"invalid {kind.__name__} value {value}") from None


def _checked(data: bytes, size: int, atype: AccountType) -> bytes:
    raw = bytes(data)
    if len(raw) < size:
        raise InvalidAccountData()
    magic, ver, found_type = _HEADER.unpack_from(raw)
    if magic != MAGIC:
        raise InvalidAccountData()
    if ver != VERSION_2:
        raise BadVersionNumber()
    if found_type != atype:
        raise WrongAccountType()
    return raw[:size]


def _price_info(price: int, conf: int, status: int, corp_act: int, pub_slot: int) -> PriceInfo:
    return PriceInfo(
        price=price,
        conf=conf,
        status=_enum(PriceStatus, status),
        corp_act=_enum(CorpAction, corp_act),
        pub_slot=pub_slot,
    )


def load_mapping_account(data: bytes) -> MappingAccount:
    """Read a mapping account from raw account bytes."""
    raw = _checked(data, _MAPPING_SIZE, AccountType.MAPPING)
    magic, ver, atype, size, num, unused, next_key = _MAPPING_HEAD.unpack_from(raw)
    table = raw[_MAPPING_HEAD.size :]
    products = tuple(
        AccKey(table[start : start + _KEY_LEN]) for start in range(0, len(table), _KEY_LEN)
    )
    return MappingAccount(magic, ver, atype, size, num, unused, AccKey(next_key), products)


def load_product_account(data: bytes) -> ProductAccount:
    """Read a product account from raw account bytes."""
    raw = _checked(data, PROD_ACCT_SIZE, AccountType.PRODUCT)
    magic, ver, atype, size, px_acc, attr = _PRODUCT.unpack(raw)
    return ProductAccount(magic, ver, atype, size, AccKey(px_acc), attr)


def load_price_account(data: bytes) -> PriceAccount:
    """Read a price account from raw account bytes."""
    raw = _checked(data, _PRICE_SIZE, AccountType.PRICE)
    (
        magic, ver, atype, size, ptype, expo, num, num_qt, last_slot, valid_slot,
        ema_val, ema_numer, ema_denom, conf_val, conf_numer, conf_denom,
        timestamp, min_pub, drv2, drv3, drv4, prod, next_key,
        prev_slot, prev_price, prev_conf, prev_timestamp,
    ) = _PRICE_HEAD.unpack_from(raw)
    agg = _price_info(*_PRICE_INFO.unpack_from(raw, _PRICE_HEAD.size))
    comp_start = _PRICE_HEAD.size + _PRICE_INFO.size
    comps = []
    for fields in _PRICE_COMP.iter_unpack(raw[comp_start:]):
        publisher, *values = fields
        comps.append(
            PriceComp(
                publisher=AccKey(publisher),
                agg=_price_info(*values[:5]),
                latest=_price_info(*values[5:]),
            )
        )
    return PriceAccount(
        magic=magic,
        ver=ver,
        atype=atype,
        size=size,
        ptype=_enum(PriceType, ptype),
        expo=expo,
        num=num,
        num_qt=num_qt,
        last_slot=last_slot,
        valid_slot=valid_slot,
        ema_price=Rational(ema_val, ema_numer, ema_denom),
        ema_conf=Rational(conf_val, conf_numer, conf_denom),
        timestamp=timestamp,
        min_pub=min_pub,
        drv2=drv2,
        drv3=drv3,
        drv4=drv4,
        prod=AccKey(prod),
        next=AccKey(next_key),
        prev_slot=prev_slot,
        prev_price=prev_price,
        prev_conf=prev_conf,
        prev_timestamp=prev_timestamp,
        agg=agg,
        comp=tuple(comps),
    )