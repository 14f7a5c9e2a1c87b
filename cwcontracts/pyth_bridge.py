"""A contract that stores Pyth price feeds delivered in verified cross-chain messages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable

from .attestation import AttestationError, BatchPriceAttestation, PriceAttestation
from .chain import ContractError, Env, Response
from .pyth_account import PriceStatus

CONFIG_KEY = b"config"
PRICE_INFO_KEY = b"price_info_v3"

# Maximum acceptable age, in seconds, before a price is considered stale.
# Allows for attestation delays of up to about a minute.
VALID_TIME_PERIOD = 3 * 60

_NANOS_PER_SECOND = 1_000_000_000
_U64_MOD = 2**64
_ID_LEN = 32

INVALID_VAA = "InvalidVAA"
ASSET_NOT_FOUND = "AssetNotFound"


@dataclass(frozen=True)
class PriceFeed:
    """The latest known state of one price feed."""

    id: bytes = bytes(_ID_LEN)
    status: PriceStatus = PriceStatus.UNKNOWN
    publish_time: int = 0
    expo: int = 0
    max_num_publishers: int = 0
    num_publishers: int = 0
    product_id: bytes = bytes(_ID_LEN)
    price: int = 0
    conf: int = 0
    ema_price: int = 0
    ema_conf: int = 0
    prev_price: int = 0
    prev_conf: int = 0
    prev_publish_time: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", bytes(self.id))
        object.__setattr__(self, "product_id", bytes(self.product_id))
        object.__setattr__(self, "status", PriceStatus(self.status))

    @classmethod
    def from_attestation(cls, attestation: PriceAttestation) -> "PriceFeed":
        """Build a feed from a price attestation."""
        return cls(
            id=attestation.price_id,
            status=attestation.status,
            publish_time=attestation.publish_time,
            expo=attestation.expo,
            max_num_publishers=attestation.max_num_publishers,
            num_publishers=attestation.num_publishers,
            product_id=attestation.product_id,
            price=attestation.price,
            conf=attestation.conf,
            ema_price=attestation.ema_price,
            ema_conf=attestation.ema_conf,
            prev_price=attestation.prev_price,
            prev_conf=attestation.prev_conf,
            prev_publish_time=attestation.prev_publish_time,
        )


@dataclass(frozen=True)
class ParsedVAA:
    """A verified cross-chain message as reported by the messaging contract."""

    version: int = 0
    guardian_set_index: int = 0
    timestamp: int = 0
    nonce: int = 0
    len_signers: int = 0
    emitter_chain: int = 0
    emitter_address: bytes = b""
    sequence: int = 0
    consistency_level: int = 0
    payload: bytes = b""
    hash: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "emitter_address", bytes(self.emitter_address))
        object.__setattr__(self, "payload", bytes(self.payload))
        object.__setattr__(self, "hash", bytes(self.hash))


@dataclass(frozen=True)
class ConfigInfo:
    """Where messages are verified and which emitter is trusted."""

    wormhole_contract: str = ""
    pyth_emitter: bytes = b""
    pyth_emitter_chain: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "pyth_emitter", bytes(self.pyth_emitter))


@dataclass(frozen=True)
class StoredPriceInfo:
    """A stored feed with when it arrived; times are in nanoseconds."""

    arrival_time: int = 0
    arrival_block: int = 0
    attestation_time: int = 0
    price_feed: PriceFeed = field(default_factory=PriceFeed)


# Called with the messaging contract address, the raw message and the block
# time in seconds; returns the verified message or raises.
VaaParser = Callable[[str, bytes, int], ParsedVAA]


def verify_vaa_sender(state: ConfigInfo, vaa: ParsedVAA) -> None:
    """Raise unless the message comes from the trusted emitter on its chain."""
    if (
        vaa.emitter_address != state.pyth_emitter
        or vaa.emitter_chain != state.pyth_emitter_chain
    ):
        raise ContractError(INVALID_VAA)


class PythBridgeContract:
    """Keeps the newest attested price for every feed."""

    def __init__(self, config: ConfigInfo, vaa_parser: VaaParser) -> None:
        self.config = config
        self.vaa_parser = vaa_parser
        self.price_infos: dict[bytes, StoredPriceInfo] = {}

    @classmethod
    def instantiate(
        cls,
        wormhole_contract: str,
        pyth_emitter: bytes,
        pyth_emitter_chain: int,
        vaa_parser: VaaParser,
    ) -> "PythBridgeContract":
        """Create the contract trusting the given emitter."""
        config = ConfigInfo(
            wormhole_contract=wormhole_contract,
            pyth_emitter=bytes(pyth_emitter),
            pyth_emitter_chain=pyth_emitter_chain,
        )
        return cls(config, vaa_parser)

    def submit_vaa(self, env: Env, data: bytes) -> Response:
        """Verify a message and apply the price batch it carries."""
        vaa = self.vaa_parser(self.config.wormhole_contract, bytes(data), env.block.seconds)
        verify_vaa_sender(self.config, vaa)
        try:
            batch = BatchPriceAttestation.deserialize(vaa.payload)
        except AttestationError:
            raise ContractError(INVALID_VAA) from None
        return self.process_batch_attestation(env, batch)

    def process_batch_attestation(self, env: Env, batch: BatchPriceAttestation) -> Response:
        """Store every attestation newer than what is held and report the count."""
        updates = 0
        for attestation in batch.price_attestations:
            feed = PriceFeed.from_attestation(attestation)
            attestation_time = (attestation.attestation_time % _U64_MOD) * _NANOS_PER_SECOND
            if self.update_price_feed_if_new(env, feed, attestation_time):
                updates += 1
        return (
            Response()
            .add_attribute("action", "price_update")
            .add_attribute("batch_size", len(batch.price_attestations))
            .add_attribute("num_updates", updates)
        )

    def update_price_feed_if_new(
        self, env: Env, price_feed: PriceFeed, attestation_time: int
    ) -> bool:
        """Store the feed unless a same-aged or newer one is held; True if stored.

        attestation_time is in nanoseconds.
        """
        current = self.price_infos.get(price_feed.id)
        if current is not None and current.attestation_time >= attestation_time:
            return False
        self.price_infos[price_feed.id] = StoredPriceInfo(
            arrival_time=env.block.time,
            arrival_block=env.block.height,
            attestation_time=attestation_time,
            price_feed=price_feed,
        )
        return True

    def query_price_feed(self, env: Env, price_id: bytes) -> PriceFeed:
        """The stored feed, marked unknown if its publish time is too far from now."""
        stored = self.price_infos.get(bytes(price_id))
        if stored is None:
            raise ContractError(ASSET_NOT_FOUND)
        feed = stored.price_feed
        published = feed.publish_time % _U64_MOD
        if abs(env.block.seconds - published) > VALID_TIME_PERIOD:
            feed = replace(feed, status=PriceStatus.UNKNOWN)
        return feed