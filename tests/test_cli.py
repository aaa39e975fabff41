import json
from dataclasses import replace

import pytest

import cli
from bsr.cluster_ops import ClusterError
from bsr.schema_manager import SchemaManager


@pytest.fixture
def tables_file(tmp_path):
    path = tmp_path / "tables.json"
    path.write_text(json.dumps({"tables": [{"name": "Orders"}, {"name": "Users"}]}))
    return str(path)


@pytest.fixture
def local_cli(monkeypatch, fake_cluster, db_path):
    cfg = replace(cli.settings, hosts=("cb1.local",), username=None, password=None, db_path=db_path)
    monkeypatch.setattr(cli, "settings", cfg)
    monkeypatch.setattr(cli, "SchemaManager", lambda cfg: SchemaManager(cfg, cluster_factory=fake_cluster.connect))
    return cli


def test_apply_create(local_cli, fake_cluster, tables_file, capsys):
    assert local_cli.main(["apply", "--tables", tables_file, "--mode", "create"]) == 0
    assert fake_cluster.buckets == {"Orders": {"orders_primary"}, "Users": {"users_primary"}}
    assert fake_cluster.disconnected == 1

    out = json.loads(capsys.readouterr().out)
    assert out == {"ok": True, "mode": "create", "tables": ["Orders", "Users"]}


def test_apply_validate_failure_exits_non_zero(local_cli, fake_cluster, tables_file, capsys):
    fake_cluster.buckets["Orders"] = set()

    assert local_cli.main(["apply", "--tables", tables_file, "--mode", "validate"]) == 1
    assert fake_cluster.disconnected == 1

    out = json.loads(capsys.readouterr().out)
    assert out["error"] == "SchemaMismatchError"
    assert out["bucket"] == "Users"


def test_apply_unknown_mode(local_cli, tables_file, capsys):
    assert local_cli.main(["apply", "--tables", tables_file, "--mode", "recreate"]) == 1
    assert json.loads(capsys.readouterr().out)["error"] == "InvalidConfigurationError"


def test_apply_unreachable_cluster(local_cli, fake_cluster, tables_file, capsys):
    fake_cluster.fail["has"] = ClusterError("No cluster host reachable")

    assert local_cli.main(["apply", "--tables", tables_file, "--mode", "update"]) == 1
    assert fake_cluster.disconnected == 1

    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is False
    assert out["error"] == "ClusterError"
    assert out["bucket"] is None
