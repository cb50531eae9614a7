import pytest
from fastapi.testclient import TestClient

from debenture_node.app import create_app
from debenture_node.config import default_config
from debenture_node.node import DebentureNode
from debenture_node.runtime.clock import ManualClock
from debenture_node.runtime.fixed_point import WAD


def _as(account):
    return {"X-Account": account}


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client(tmp_path, clock):
    cfg = default_config()
    cfg["persistence"]["data_dir"] = str(tmp_path / "data")
    node = DebentureNode(cfg, clock=clock)
    return TestClient(create_app(node))


def _fund_and_deposit(client, account, amount):
    assert client.post("/dev/faucet", json={"address": account, "amount": amount}).json()["ok"]
    client.post("/token/approve", json={"spender": "@vault", "amount": amount}, headers=_as(account))
    return client.post("/vault/deposit", json={"amount": amount}, headers=_as(account))


def test_health(client):
    body = client.get("/health").json()
    assert body["ok"]
    assert body["vault"]["exchange_rate"] == WAD


def test_deposit_and_account_view(client):
    resp = _fund_and_deposit(client, "@alice", 1000)
    assert resp.status_code == 200
    assert resp.json()["shares"] == 1000

    acct = client.get("/vault/accounts/@alice").json()
    assert acct["shares"] == 1000
    assert acct["ownership"] == WAD
    assert acct["redeemable"] == 1000


def test_errors_map_to_http_status(client):
    _fund_and_deposit(client, "@alice", 100)

    resp = client.post("/vault/withdraw", json={"shares": 0}, headers=_as("@alice"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "invalid_shares"

    resp = client.post("/vault/sell_block", json={"address": "@alice", "blocked": True}, headers=_as("@alice"))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "unauthorized"

    client.post("/vault/sell_block", json={"address": "@alice", "blocked": True}, headers=_as("@owner"))
    resp = client.post("/vault/withdraw", json={"shares": 50}, headers=_as("@alice"))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "sell_blocked"


def test_missing_account_header(client):
    resp = client.post("/vault/deposit", json={"amount": 1})
    assert resp.status_code == 422


def test_governance_flow(client, clock):
    _fund_and_deposit(client, "@alice", 50_000)
    _fund_and_deposit(client, "@bob", 15_000)

    created = client.post("/governance/proposals", json={"description": "upgrade"}, headers=_as("@alice")).json()
    pid = created["proposal"]["id"]
    assert created["proposal"]["state"] == "active"

    for voter in ("@alice", "@bob"):
        resp = client.post(f"/governance/proposals/{pid}/vote", json={"support": True}, headers=_as(voter))
        assert resp.status_code == 200

    resp = client.post(f"/governance/proposals/{pid}/execute", headers=_as("@carol"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "voting_not_ended"

    clock.advance(7 * 24 * 60 * 60 + 1)
    assert client.get(f"/governance/proposals/{pid}").json()["proposal"]["state"] == "succeeded"

    executed = client.post(f"/governance/proposals/{pid}/execute", headers=_as("@carol")).json()
    assert executed["passed"] is True
    assert executed["proposal"]["state"] == "executed"

    assert client.get("/governance/proposals/99").status_code == 404
    names = [e["event"] for e in client.get("/events?limit=3").json()["events"]]
    assert names[-1] == "ProposalExecuted"


def test_faucet_can_be_disabled(tmp_path):
    cfg = default_config()
    cfg["persistence"]["enabled"] = False
    cfg["dev"]["faucet_enabled"] = False
    client = TestClient(create_app(DebentureNode(cfg)))
    resp = client.post("/dev/faucet", json={"address": "@alice", "amount": 1})
    assert resp.status_code == 403
