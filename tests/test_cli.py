from __future__ import annotations

import json
import socket

import pytest

from tactics_sim import cli
from tactics_sim.cli import find_available_port, main


class _DummyServer:
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_resolve_bundled_scenario_by_name(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["resolve", "thermopylae"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Round 1:")
    assert "Pass Guard repels Invading Host" in out
    assert out.rstrip().endswith("Outcome: defender_victory")


def test_resolve_verbose_prints_power_breakdowns(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-v", "resolve", "fleet_action", "--seed", "3"]) == 0
    out = capsys.readouterr().out
    assert "attacker " in out and "Doctrine Execution" in out


def test_resolve_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["resolve", "thermopylae", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["outcome"] == "defender_victory"
    assert data["totalRounds"] == len(data["rounds"])


def test_seed_override_is_deterministic(capsys: pytest.CaptureFixture[str]) -> None:
    main(["resolve", "fleet_action", "--seed", "11", "--json"])
    first = capsys.readouterr().out
    main(["resolve", "fleet_action", "--seed", "11", "--json"])
    assert capsys.readouterr().out == first


def test_missing_scenario_returns_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["resolve", "no-such-battle"]) == 2
    assert "not found" in capsys.readouterr().err


def test_find_available_port_falls_back_when_port_in_use(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, int]] = []

    def fake_create_server(addr, reuse_port=False):
        calls.append(addr)
        if len(calls) == 1:
            raise OSError("Address already in use")
        return _DummyServer()

    monkeypatch.setattr(socket, "create_server", fake_create_server)

    chosen_port, did_fallback = find_available_port("127.0.0.1", 8000, max_tries=10)

    assert did_fallback is True
    assert chosen_port == 8001
    assert calls == [("127.0.0.1", 8000), ("127.0.0.1", 8001)]


def test_find_available_port_gives_up(monkeypatch: pytest.MonkeyPatch) -> None:
    def busy(addr, reuse_port=False):
        raise OSError("Address already in use")

    monkeypatch.setattr(socket, "create_server", busy)
    with pytest.raises(RuntimeError, match="after 3 attempts"):
        find_available_port("127.0.0.1", 8000, max_tries=3)


def test_find_available_port_rejects_invalid_max_tries() -> None:
    with pytest.raises(ValueError):
        find_available_port("127.0.0.1", 8000, max_tries=0)


def test_serve_starts_uvicorn_on_chosen_port(monkeypatch: pytest.MonkeyPatch) -> None:
    started: dict = {}
    monkeypatch.setattr(socket, "create_server", lambda addr, reuse_port=False: _DummyServer())
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: started.update(app=app, **kwargs))

    assert main(["serve", "--port", "8123"]) == 0
    assert started == {
        "app": "tactics_sim.server.main:app",
        "host": "127.0.0.1",
        "port": 8123,
        "reload": False,
    }
