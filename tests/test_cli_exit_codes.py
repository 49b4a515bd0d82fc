from __future__ import annotations

import json
from pathlib import Path

import pytest

import linkroute.cli as cli_module
from routing_engine.errors import RoutingEngineError


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    (tmp_path / "settings.json").write_text(json.dumps({"provider": "manifest"}), encoding="utf-8")
    return tmp_path


def _run(data_root: Path, *argv: str) -> int:
    return cli_module.main([*argv, "--data-root", str(data_root)])


def test_open_without_destination_returns_1(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "open", "https://example.org/")
    assert rc == 1
    assert "no destination (no_destination)" in capsys.readouterr().out


def test_route_unparseable_url(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "route", "not a url")
    assert rc == 0
    assert "unparseable" in capsys.readouterr().out


def test_update_unknown_rule_returns_2(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "rules", "update", "nope", "--pattern", "x.com")
    assert rc == 2
    assert "ERROR: Unknown rule id: nope" in capsys.readouterr().out


def test_delete_unknown_rule_returns_2(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "rules", "delete", "nope")
    assert rc == 2
    assert "ERROR:" in capsys.readouterr().out


def test_move_unknown_rule_returns_2(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "rules", "move", "nope", "--to", "0")
    assert rc == 2
    assert "ERROR:" in capsys.readouterr().out


def test_fallback_unknown_destination_returns_2(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "fallback", "org.example.missing")
    assert rc == 2
    assert "ERROR: Unknown destination" in capsys.readouterr().out


def test_rules_test_unparseable_returns_2(data_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = _run(data_root, "rules", "test", "nope")
    assert rc == 2
    assert "ERROR:" in capsys.readouterr().out


def test_invalid_port_is_a_usage_error(data_root: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(data_root, "rules", "add", "--pattern", "x", "--destination", "y", "--port", "70000")
    assert excinfo.value.code == 2


def test_engine_error_returns_2(
    data_root: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RoutingEngineError("nope")

    monkeypatch.setattr(cli_module, "open_routing_service", _boom)

    rc = _run(data_root, "route", "https://example.org/")
    out = capsys.readouterr().out
    assert rc == 2
    assert "ERROR: nope" in out
