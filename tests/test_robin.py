from cwcontracts.robin import ExecutePalomaJob, TargetContractInfo, call

TARGET = TargetContractInfo(
    chain_id="eth-main",
    compass_id="compass",
    contract_address="0xabc",
    smart_contract_abi="[]",
)


def test_call_emits_single_job():
    response = call(TARGET, b"\x01\x02")
    assert response.messages == [ExecutePalomaJob(TARGET, b"\x01\x02")]
    assert response.attributes == []


def test_call_carries_target_and_payload():
    job = call(TARGET, bytearray(b"data")).messages[0]
    assert job.target_contract_info == TARGET
    assert job.payload == b"data"


def test_empty_payload_allowed():
    job = call(TARGET, b"").messages[0]
    assert job.payload == b""