import json

import pytest

import main


@pytest.fixture
def run_cli(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    database = str(tmp_path / "cli.db")

    def _run(*args):
        main.main(["--database", database, *args])
        return json.loads(capsys.readouterr().out)

    return _run


def test_create_publish_delete_cycle(run_cli):
    root = run_cli("create", "--name", "Home")
    child = run_cli("create", "--name", "About", "--parent", root["id"], "--properties", '{"title": "About us"}')

    assert child["ancestors"] == [root["id"]]
    assert child["parent_path"] == f",{root['id']},"
    assert child["properties"] == {"title": "About us"}

    tree = run_cli("tree")
    assert [node["id"] for node in tree] == [root["id"]]
    assert tree[0]["has_children"] is True

    snapshot = run_cli("update", child["id"], "--name", "About Us", "--child", f"page:{root['id']}", "--publish")
    assert snapshot["content_id"] == child["id"]
    assert snapshot["published_child_items"] == [{"content_ref": root["id"], "ref_kind": "publishedPage"}]

    versions = run_cli("versions", child["id"])
    assert [v["id"] for v in versions] == [snapshot["content_version_id"]]

    shown = run_cli("show", child["id"])
    assert [c["content"]["id"] for c in shown["children"]] == [root["id"]]

    deleted = run_cli("delete", root["id"])
    assert deleted["content"]["is_deleted"] is True
    assert deleted["descendants"]["matched_count"] == 1

    assert run_cli("tree") == []
    assert run_cli("show", child["id"], "--published")["content"]["is_deleted"] is True


def test_publish_and_reconcile_with_nothing_to_do(run_cli):
    page = run_cli("create", "--name", "Home")

    published = run_cli("publish", page["id"])
    assert published["is_published"] is True
    assert run_cli("reconcile") == []


def test_blocks_use_their_own_tables(run_cli):
    block = run_cli("--kind", "block", "create", "--name", "Hero")

    assert run_cli("--kind", "block", "tree")[0]["id"] == block["id"]
    assert run_cli("tree") == []


def test_missing_node_exits_with_error(run_cli, capsys):
    with pytest.raises(SystemExit) as exit_info:
        run_cli("show", "nope")

    assert exit_info.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_child_reference_is_rejected(run_cli):
    with pytest.raises(SystemExit) as exit_info:
        run_cli("create", "--name", "Home", "--child", "no-kind")

    assert exit_info.value.code == 2
