"""
SuperNova Flask 엔드포인트 테스트
==================================

TinyDB MemoryStorage 위의 앱으로 prove → proof → verify → reset 흐름을 확인한다.
"""

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from app import create_app
from supernova_routes import get_params
from supernova_serializers import deserialize_proof, serialize_proof
from zkp.supernova.config import SupernovaConfig


@pytest.fixture
def client():
    app = create_app(TinyDB(storage=MemoryStorage))
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def proved(client):
    response = client.post("/supernova/prove", json={"trace": [[0, 3], [1, 5], [0, 7]]})
    assert response.status_code == 200
    return response.get_json()


def test_index_lists_endpoints(client):
    data = client.get("/").get_json()
    assert "/supernova/prove" in data["endpoints"]


def test_program(client):
    data = client.get("/supernova/program").get_json()
    assert data["modulus"] == "97"
    assert [i["name"] for i in data["instructions"]] == ["add1", "double"]
    assert all(len(i["digest"]) == 64 for i in data["instructions"])


def test_program_unknown_field(client):
    assert client.get("/supernova/program?field=bls").status_code == 400


def test_prove_returns_outputs(proved):
    assert proved["steps"] == 3
    assert proved["outputs"] == [["4"], ["8"], ["9"]]
    assert proved["final_output"] == ["9"]


def test_proof_stored(client, proved):
    data = client.get("/supernova/proof").get_json()
    assert data["field"] == "toy"
    assert len(data["proof"]["records"]) == 3


def test_verify_stored_proof(client, proved):
    data = client.post("/supernova/verify", json={"claimed_final_output": 9}).get_json()
    assert data["valid"] is True
    assert data["failure"] is None
    assert data["obligations"] == 2


def test_verify_with_opening(client, proved):
    data = client.post(
        "/supernova/verify", json={"claimed_final_output": [9], "with_opening": True}
    ).get_json()
    assert data["valid"] is True
    assert data["obligations"] == 0


def test_verify_wrong_claim(client, proved):
    data = client.post("/supernova/verify", json={"claimed_final_output": 10}).get_json()
    assert data["valid"] is False
    assert data["failure"] == "hash-chain-broken"


def test_verify_tampered_proof_in_request(client, proved):
    proof = client.get("/supernova/proof").get_json()["proof"]
    proof["records"][1]["output"] = ["9"]
    data = client.post(
        "/supernova/verify", json={"claimed_final_output": 9, "proof": proof}
    ).get_json()
    assert data["valid"] is False
    assert data["step"] == 1


def test_verify_malformed_proof_in_request(client, proved):
    proof = client.get("/supernova/proof").get_json()["proof"]
    proof["records"][0]["cross_term"] = "zz"
    data = client.post(
        "/supernova/verify", json={"claimed_final_output": 9, "proof": proof}
    ).get_json()
    assert data["valid"] is False
    assert data["failure"] == "malformed-proof-shape"


def test_verify_requires_claim(client, proved):
    assert client.post("/supernova/verify", json={}).status_code == 400


def test_prove_unknown_instruction(client):
    response = client.post("/supernova/prove", json={"trace": [[0, 3], [4, 0]]})
    assert response.status_code == 400


def test_prove_initial_pc_mismatch(client):
    response = client.post("/supernova/prove", json={"trace": [[0, 3]], "initial_pc": 1})
    assert response.status_code == 422


def test_prove_empty_trace(client):
    assert client.post("/supernova/prove", json={"trace": []}).status_code == 400


def test_reset(client, proved):
    assert client.post("/supernova/reset").get_json() == {"ok": True}
    assert client.get("/supernova/proof").status_code == 404
    assert client.post("/supernova/verify", json={"claimed_final_output": 9}).status_code == 404


def test_json_proof_roundtrip(toy_pp, scenario):
    _, proof = scenario
    assert deserialize_proof(toy_pp.scheme, serialize_proof(toy_pp.scheme, proof)) == proof


def test_app_config_reaches_params():
    config = SupernovaConfig(workers=2, generator_seed=b"route-seed")
    create_app(TinyDB(storage=MemoryStorage), config)
    pp = get_params("toy")
    assert pp.config is config
    assert pp.scheme.seed == b"route-seed"
    assert pp.scheme.workers == 2

    # 새 앱은 이전 앱의 params 캐시를 물려받지 않는다
    create_app(TinyDB(storage=MemoryStorage))
    assert get_params("toy").scheme.seed == b"supernova-commit"


def test_prove_and_verify_with_app_config():
    app = create_app(TinyDB(storage=MemoryStorage), SupernovaConfig(workers=2, generator_seed=b"route-seed"))
    client = app.test_client()
    assert client.post("/supernova/prove", json={"trace": [[0, 3], [1, 5]]}).status_code == 200
    data = client.post("/supernova/verify", json={"claimed_final_output": 8, "with_opening": True}).get_json()
    assert data["valid"] is True
