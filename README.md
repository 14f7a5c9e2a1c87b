# cwcontracts

Python implementations of a small family of on-chain contracts and of the
binary formats they exchange. Each contract keeps its state in ordinary
Python objects. You can drive a whole flow and check it in one process,
with no chain involved.

## Modules

| Module | Contents |
| --- | --- |
| `cwcontracts.chain` | Execution types shared by the contracts: `Coin(denom, amount)`, `Attribute`, `BankSend`, `WasmExecute`, `Response` (with `add_message`, `add_attribute` and `attribute_map`), `MessageInfo`, `BlockInfo` (time in nanoseconds), `Env` and `ContractError`. The helpers `mock_env()` and `mock_info(sender, funds)` build a fixed test environment and the info for a call. |
| `cwcontracts.claims` | `ClaimsContract`. Funds sent at `instantiate` must equal the sum of the registered claims. Each claimant calls `claim` to receive their amount. The admin calls `clear`, which reports the unclaimed entries as attributes and sends the funds that are left back to the admin. |
| `cwcontracts.robin` | `TargetContractInfo`, `ExecutePalomaJob`, and `call(target_contract_info, payload)`, which returns a response holding a single job message. |
| `cwcontracts.egg` | `EggContract`, a raffle. Each entry (`lay_egg`) must come with exactly 1,000,000 `ugrain` and a 20-byte `0x` Ethereum address. The admin's `pick_winner` draws among eligible entrants using a generator seeded with the block time. No Paloma address and no Ethereum address can win twice. |
| `cwcontracts.compass` | `CompassContract`. It runs a JSON payload only when signers holding at least 2/3 of the validator set's power have signed it (compact secp256k1 signatures over its SHA-256). An `UpdateValset` payload replaces the set and must carry a higher id. A `SubmitLogicCall` payload emits a `WasmExecute`. It is refused if it calls the contract itself, if its deadline has passed, if funds are attached, or if its message id was used before. Also provided: `check_validator_power`, `verify_signature`, `encode_payload` and `parse_payload`. |
| `cwcontracts.pyth_account` | Decodes raw Pyth mapping, product and price accounts: `load_mapping_account`, `load_product_account` and `load_price_account`. Failures raise `InvalidAccountData`, `BadVersionNumber` or `WrongAccountType`, all subclasses of `PythError`. `ProductAccount.attributes()` yields the key/value pairs of a product account. |
| `cwcontracts.attestation` | The `P2WH` big-endian attestation format. `PriceAttestation` and `BatchPriceAttestation` each provide `serialize()` and `deserialize()`, and `deserialize()` accepts bytes or a binary stream. `PriceAttestation` also provides `from_pyth_price_bytes` and `to_dict()`. Errors raise `AttestationError`. |
| `cwcontracts.pyth_bridge` | `PythBridgeContract`. `submit_vaa` checks that the verified message comes from the trusted emitter and chain, then decodes the attestation batch it carries. A feed is stored only if it is newer than the one already held. `query_price_feed` reports a feed as `UNKNOWN` when its publish time is more than 180 seconds away from the block time. |
| `cwcontracts.cw20_wrapped` | `Cw20WrappedContract`, a CW20-style token with transfer, send, allowances, burn and queries. Only the bridge, which is the instantiating sender, may `mint` or `update_metadata`. `token_info()` appends `" (Wormhole)"` to the name. `instantiate` returns the contract together with its response. |

## Installation

```
pip install .
```

To install with the test suite's dependencies and run the tests:

```
pip install ".[test]"
pytest
```

## Example: claims

```python
from cwcontracts.chain import Coin, mock_info
from cwcontracts.claims import ClaimsContract

contract = ClaimsContract.instantiate(
    mock_info("admin0000", [Coin("ucarrot", 15)]),
    [("p1", 4), ("p2", 5), ("p3", 6)],
)
contract.claim(mock_info("p1", []))
contract.claim(mock_info("p2", []))
response = contract.clear(mock_info("admin0000", []))
print(response.attribute_map())   # {'p3': '6'}
```

## Example: price attestations

```python
from cwcontracts.attestation import BatchPriceAttestation, PriceAttestation
from cwcontracts.pyth_account import PriceStatus

batch = BatchPriceAttestation([
    PriceAttestation(product_id=bytes([21]) * 32, price_id=bytes([222]) * 32,
                     price=101, conf=1, expo=-3, status=PriceStatus.TRADING),
])
blob = batch.serialize()
assert BatchPriceAttestation.deserialize(blob) == batch
```

## Errors

A contract that rejects an operation raises `ContractError` or one of its
subclasses. The message gives the reason, for example `"Insufficient Power"`,
`"Timeout"` or `"Unauthorized"`.

## What this package does not do

- It does not connect to any chain. Messages placed in a `Response` are only
  returned to the caller and are never executed.
- It keeps no persistent storage. Contract state exists only in memory.
- It does not verify cross-chain messages. `PythBridgeContract` needs a
  `vaa_parser` callable that does the verification and returns a `ParsedVAA`.
- It provides no command-line tool and no server.