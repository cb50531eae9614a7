import json

import pytest

from debenture_node.__main__ import main
from debenture_node.config import default_config, load_config
from debenture_node.node import DebentureNode
from debenture_node.runtime.clock import ManualClock
from debenture_node.runtime.events import read_jsonl
from debenture_node.runtime.governance import ProposalState


def _cfg(tmp_path, **gov):
    cfg = default_config()
    cfg["persistence"]["data_dir"] = str(tmp_path / "data")
    cfg["governance"].update(gov)
    return cfg


def _fund(node, user, amount):
    node.token.mint(user, amount)
    node.token.approve(user, node.vault.address, amount)


def test_state_survives_restart(tmp_path):
    cfg = _cfg(tmp_path)
    node = DebentureNode(cfg, clock=ManualClock())
    _fund(node, "@alice", 5_000)
    node.vault.deposit("@alice", 3_000)
    node.vault.set_sell_blocked("@owner", "@alice", True)

    again = DebentureNode(cfg, clock=ManualClock())
    assert again.vault.share_balance("@alice") == 3_000
    assert again.vault.total_backing() == 3_000
    assert again.vault.is_sell_blocked("@alice")
    assert again.token.balance_of("@alice") == 2_000


def test_rolled_back_operation_is_not_persisted(tmp_path):
    cfg = _cfg(tmp_path)
    node = DebentureNode(cfg, clock=ManualClock())
    _fund(node, "@alice", 100)
    node.vault.deposit("@alice", 100)
    saved = node.store.load()

    with pytest.raises(Exception):
        node.vault.withdraw("@alice", 101)
    assert node.store.load() == saved


def test_governance_weighted_by_vault_shares(tmp_path):
    clock = ManualClock()
    node = DebentureNode(_cfg(tmp_path), clock=clock)
    for user, amount in (("@alice", 50_000), ("@bob", 15_000)):
        _fund(node, user, amount)
        node.vault.deposit(user, amount)

    gov = node.governance
    pid = gov.create_proposal("@alice", "use shares as votes")
    gov.vote("@alice", pid, True)
    gov.vote("@bob", pid, True)
    clock.advance(gov.voting_period + 1)

    assert gov.get_proposal_state(pid) is ProposalState.SUCCEEDED
    assert gov.execute_proposal("@bob", pid) is True


def test_governance_weighted_by_asset(tmp_path):
    node = DebentureNode(_cfg(tmp_path, weighting="asset"), clock=ManualClock())
    node.token.mint("@alice", 2_000)
    assert node.governance.create_proposal("@alice", "asset holders decide") == 0


def test_config_yaml_and_env(tmp_path, monkeypatch):
    path = tmp_path / "debenture_config.yaml"
    path.write_text("governance:\n  quorum_threshold: 5\nvault:\n  owner: '@root'\n", encoding="utf-8")
    monkeypatch.setenv("DEBENTURE_PORT", "9100")
    monkeypatch.setenv("DEBENTURE_FAUCET", "no")

    cfg = load_config(repo_root=str(tmp_path))

    assert cfg["governance"]["quorum_threshold"] == 5
    assert cfg["governance"]["voting_period_sec"] == 7 * 24 * 60 * 60
    assert cfg["vault"]["owner"] == "@root"
    assert cfg["server"]["port"] == 9100
    assert cfg["dev"]["faucet_enabled"] is False


def test_config_rejects_unknown_weighting(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("governance:\n  weighting: votes\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path=str(path))


def test_status_command(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("DEBENTURE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    assert main(["status"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["vault"]["total_shares"] == 0
    assert out["governance"]["proposals"] == 0


def test_default_config_returns_independent_copies(tmp_path, monkeypatch):
    first = default_config()
    first["persistence"]["enabled"] = False
    first["governance"]["quorum_threshold"] = 1

    fresh = default_config()
    assert fresh["persistence"]["enabled"] is True
    assert fresh["governance"]["quorum_threshold"] == 10_000

    monkeypatch.setenv("DEBENTURE_PORT", "9200")
    assert load_config(path=str(tmp_path / "missing.yaml"))["server"]["port"] == 9200
    assert default_config()["server"]["port"] == 8000


def test_event_sequence_continues_after_restart(tmp_path):
    cfg = _cfg(tmp_path)
    cfg["events"]["jsonl_path"] = str(tmp_path / "events.jsonl")
    node = DebentureNode(cfg, clock=ManualClock())
    _fund(node, "@alice", 500)
    node.vault.deposit("@alice", 500)

    again = DebentureNode(cfg, clock=ManualClock())
    again.vault.withdraw("@alice", 200)

    seqs = [r["seq"] for r in read_jsonl(tmp_path / "events.jsonl")]
    assert seqs == list(range(len(seqs)))
    assert again.events.records()[0]["seq"] > 0
