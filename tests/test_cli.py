import json

import pytest
from click.testing import CliRunner

from helpers import POOL, TOKEN_A, TOKEN_B, FakeRPC, burn_log, swap_log
from poolwindow.presentation import cli as cli_mod

TS = [1_600_000_000 + 12 * i for i in range(1000)]


@pytest.fixture
def rpc(monkeypatch):
    fake = FakeRPC(TS, [swap_log(block=100), burn_log(block=105)], pools={(TOKEN_A, TOKEN_B, 3000): POOL})
    monkeypatch.setattr(cli_mod, "rpc_factory", lambda settings: fake)
    return fake


def test_activity_json(rpc):
    result = CliRunner().invoke(cli_mod.cli, [
        "--log-level", "WARNING", "activity", "--pool", POOL, "--start", str(TS[100]), "--end", str(TS[110]), "--sample-size", "10", "--json",
    ])
    assert result.exit_code == 0, result.output
    body = json.loads(result.output[result.output.index("{"):])
    assert (body["from_block"], body["to_block"]) == (100, 110)
    assert [d["event"] for d in body["data"]] == ["Swap", "Burn"]


def test_activity_by_tokens_writes_files(rpc, tmp_path):
    out_json = tmp_path / "report.json"
    out_pq = tmp_path / "report.parquet"
    result = CliRunner().invoke(cli_mod.cli, [
        "activity", "--token-a", TOKEN_A, "--token-b", TOKEN_B,
        "--start", "2020-09-13 12:46:40", "--end", str(TS[200]),
        "--json-out", str(out_json), "--parquet-out", str(out_pq),
    ])
    assert result.exit_code == 0, result.output
    assert "summary" in result.output
    assert json.loads(out_json.read_text())["pool"] == POOL
    assert out_pq.exists()
    assert rpc.calls["get_pool"] == 1


def test_activity_requires_pool_or_tokens(rpc):
    result = CliRunner().invoke(cli_mod.cli, ["activity", "--start", "1", "--end", "2"])
    assert result.exit_code == 2


def test_activity_future_start_fails(rpc):
    result = CliRunner().invoke(cli_mod.cli, [
        "activity", "--pool", POOL, "--start", "2999-01-01 00:00:00", "--end", "2999-01-02 00:00:00",
    ])
    assert result.exit_code == 1
    assert "future" in result.output
    assert sum(rpc.calls.values()) == 0


def test_block_at(rpc):
    result = CliRunner().invoke(cli_mod.cli, ["block-at", "--timestamp", str(TS[321] - 3), "--sample-size", "20"])
    assert result.exit_code == 0, result.output
    assert result.output.strip().splitlines()[-1] == "321"


@pytest.mark.parametrize("option", ["--pool", "--token-a"])
def test_activity_rejects_bad_address(rpc, option):
    args = ["activity", option, "0x1234", "--start", str(TS[1]), "--end", str(TS[2])]
    if option == "--token-a":
        args += ["--token-b", TOKEN_B]
    result = CliRunner().invoke(cli_mod.cli, args)
    assert result.exit_code == 2
    assert "Invalid" in result.output
    assert sum(rpc.calls.values()) == 0
