from dataclasses import replace

import pytest

from cwcontracts.attestation import BatchPriceAttestation, PriceAttestation
from cwcontracts.chain import BlockInfo, ContractError, Env, mock_env
from cwcontracts.pyth_account import PriceStatus
from cwcontracts.pyth_bridge import (
    VALID_TIME_PERIOD,
    ConfigInfo,
    ParsedVAA,
    PriceFeed,
    PythBridgeContract,
    StoredPriceInfo,
    verify_vaa_sender,
)

NANOS = 1_000_000_000
EMITTER = bytes([7] * 32)
CHAIN = 1


def env_at(seconds):
    base = mock_env()
    return Env(
        block=BlockInfo(height=base.block.height, time=seconds * NANOS, chain_id=base.block.chain_id),
        contract_address=base.contract_address,
    )


def make_contract(payload=b"", emitter=EMITTER, chain=CHAIN):
    calls = []

    def parser(wormhole_contract, data, block_time):
        calls.append((wormhole_contract, data, block_time))
        return ParsedVAA(emitter_chain=chain, emitter_address=emitter, payload=payload)

    contract = PythBridgeContract.instantiate("wormhole0000", EMITTER, CHAIN, parser)
    return contract, calls


def attestation(n, attestation_time=1000):
    return PriceAttestation(
        product_id=bytes([n] * 32),
        price_id=bytes([255 - n] * 32),
        price=100 + n,
        conf=5,
        expo=-3,
        status=PriceStatus.TRADING,
        attestation_time=attestation_time,
        publish_time=attestation_time,
    )


def test_verify_vaa_sender_wrong_emitter_address():
    config = ConfigInfo(pyth_emitter=bytes([1]), pyth_emitter_chain=3)
    vaa = ParsedVAA(emitter_address=bytes([3, 4]), emitter_chain=3)
    with pytest.raises(ContractError, match="InvalidVAA"):
        verify_vaa_sender(config, vaa)


def test_verify_vaa_sender_wrong_emitter_chain():
    config = ConfigInfo(pyth_emitter=bytes([1]), pyth_emitter_chain=3)
    vaa = ParsedVAA(emitter_address=bytes([1]), emitter_chain=2)
    with pytest.raises(ContractError, match="InvalidVAA"):
        verify_vaa_sender(config, vaa)


def test_update_first_price_ok():
    contract, _ = make_contract()
    feed = PriceFeed(expo=3)
    assert contract.update_price_feed_if_new(mock_env(), feed, 100 * NANOS) is True
    assert contract.price_infos[feed.id].price_feed == feed


def test_update_ignores_duplicate_time():
    contract, _ = make_contract()
    first = PriceFeed(expo=3)
    assert contract.update_price_feed_if_new(mock_env(), first, 100 * NANOS) is True
    assert contract.update_price_feed_if_new(mock_env(), PriceFeed(expo=4), 100 * NANOS) is False
    assert contract.price_infos[first.id].price_feed == first


def test_update_ignores_older():
    contract, _ = make_contract()
    first = PriceFeed(expo=3)
    assert contract.update_price_feed_if_new(mock_env(), first, 100 * NANOS) is True
    assert contract.update_price_feed_if_new(mock_env(), PriceFeed(expo=4), 90 * NANOS) is False
    assert contract.price_infos[first.id].price_feed == first


def test_update_accepts_newer():
    contract, _ = make_contract()
    first = PriceFeed(expo=3)
    second = PriceFeed(expo=4)
    assert contract.update_price_feed_if_new(mock_env(), first, 100 * NANOS) is True
    assert contract.update_price_feed_if_new(mock_env(), second, 110 * NANOS) is True
    stored = contract.price_infos[first.id]
    assert stored.price_feed == second
    assert stored.arrival_block == mock_env().block.height
    assert stored.arrival_time == mock_env().block.time


def _store(contract, publish_time):
    contract.price_infos[b"123"] = StoredPriceInfo(
        price_feed=PriceFeed(publish_time=publish_time, status=PriceStatus.TRADING)
    )


def test_query_trading():
    contract, _ = make_contract()
    _store(contract, 80)
    feed = contract.query_price_feed(env_at(80 + VALID_TIME_PERIOD), b"123")
    assert feed.status == PriceStatus.TRADING


def test_query_stale_past():
    contract, _ = make_contract()
    _store(contract, 500)
    feed = contract.query_price_feed(env_at(500 + VALID_TIME_PERIOD + 1), b"123")
    assert feed.status == PriceStatus.UNKNOWN
    assert contract.price_infos[b"123"].price_feed.status == PriceStatus.TRADING


def test_query_trading_future():
    contract, _ = make_contract()
    _store(contract, 500)
    feed = contract.query_price_feed(env_at(500 - VALID_TIME_PERIOD), b"123")
    assert feed.status == PriceStatus.TRADING


def test_query_stale_future():
    contract, _ = make_contract()
    _store(contract, 500)
    feed = contract.query_price_feed(env_at(500 - VALID_TIME_PERIOD - 1), b"123")
    assert feed.status == PriceStatus.UNKNOWN


def test_query_not_found():
    contract, _ = make_contract()
    with pytest.raises(ContractError, match="AssetNotFound"):
        contract.query_price_feed(mock_env(), b"123")


def test_submit_vaa_stores_batch():
    batch = BatchPriceAttestation([attestation(1), attestation(2)])
    contract, calls = make_contract(payload=batch.serialize())
    env = mock_env()
    response = contract.submit_vaa(env, b"raw-vaa")
    attrs = response.attribute_map()
    assert attrs["action"] == "price_update"
    assert attrs["batch_size"] == str(len(batch.price_attestations))
    assert attrs["num_updates"] == str(len(batch.price_attestations))
    assert calls == [("wormhole0000", b"raw-vaa", env.block.seconds)]
    for item in batch.price_attestations:
        stored = contract.price_infos[item.price_id]
        assert stored.price_feed == PriceFeed.from_attestation(item)
        assert stored.attestation_time == item.attestation_time * NANOS


def test_submit_vaa_twice_updates_nothing():
    batch = BatchPriceAttestation([attestation(1), attestation(2)])
    contract, _ = make_contract(payload=batch.serialize())
    contract.submit_vaa(mock_env(), b"raw-vaa")
    response = contract.submit_vaa(mock_env(), b"raw-vaa")
    assert response.attribute_map()["num_updates"] == "0"


def test_process_batch_counts_only_newer():
    contract, _ = make_contract()
    contract.process_batch_attestation(mock_env(), BatchPriceAttestation([attestation(1, 1000)]))
    newer = BatchPriceAttestation([attestation(1, 2000), attestation(2, 500)])
    response = contract.process_batch_attestation(mock_env(), newer)
    assert response.attribute_map()["num_updates"] == str(len(newer.price_attestations))
    assert contract.price_infos[attestation(1).price_id].attestation_time == 2000 * NANOS


def test_submit_vaa_wrong_emitter():
    batch = BatchPriceAttestation([attestation(1)])
    contract, _ = make_contract(payload=batch.serialize(), emitter=bytes(32))
    with pytest.raises(ContractError, match="InvalidVAA"):
        contract.submit_vaa(mock_env(), b"raw-vaa")
    assert contract.price_infos == {}


def test_submit_vaa_wrong_chain():
    batch = BatchPriceAttestation([attestation(1)])
    contract, _ = make_contract(payload=batch.serialize(), chain=CHAIN + 1)
    with pytest.raises(ContractError, match="InvalidVAA"):
        contract.submit_vaa(mock_env(), b"raw-vaa")


def test_submit_vaa_bad_payload():
    payload = BatchPriceAttestation([attestation(1)]).serialize()[:-1]
    contract, _ = make_contract(payload=payload)
    with pytest.raises(ContractError, match="InvalidVAA"):
        contract.submit_vaa(mock_env(), b"raw-vaa")


def test_feed_from_attestation_round_trip():
    item = attestation(3)
    feed = PriceFeed.from_attestation(item)
    assert feed.id == item.price_id
    assert feed.product_id == item.product_id
    assert replace(feed, status=PriceStatus.HALTED).status == PriceStatus.HALTED
    assert (feed.price, feed.conf, feed.expo) == (item.price, item.conf, item.expo)
    assert feed.publish_time == item.publish_time
    assert feed.status == item.status


def test_instantiate_config():
    contract, _ = make_contract()
    assert contract.config == ConfigInfo("wormhole0000", EMITTER, CHAIN)
    assert contract.price_infos == {}