from __future__ import annotations

import io
from pathlib import Path

import pytest

from overload.client.cli import main, parse_card, parse_command, play_hotseat
from overload.client.session import HotseatSession
from overload.engine.actions import (
    DefuseReinsert,
    Draw,
    PlayAction,
    ResolveFatalOrEliminate,
    ResolveFavorFrom,
    ResolvePairTarget,
    ResolveTripleTarget,
    StartCombo,
)
from overload.engine.match import replay
from overload.engine.serialize import snapshot
from overload.engine.types import Card, ComboMode, Controller, Participant, Phase
from overload.services.telemetry import TelemetryService
from helpers import load_rules


def _bots(n: int) -> list[Participant]:
    return [Participant(f"Bot {i}", Controller.BOT) for i in range(n)]


def test_bot_match_reports_completion_once(tmp_path: Path) -> None:
    telemetry = TelemetryService(tmp_path / "telemetry.jsonl")
    session = HotseatSession(_bots(3), load_rules(), seed=11, telemetry=telemetry, check=True)
    session.run_bots()

    assert session.is_over
    assert telemetry.count("match_started") == 1
    assert telemetry.count("match_finished") == 1
    record = telemetry.records("match_finished")[0]
    assert record["payload"]["winner"] == session.state.winner  # type: ignore[index]

    assert session.submit(Draw()) is False
    session.run_bots()
    assert telemetry.count("match_finished") == 1


def test_session_history_replays_to_same_state() -> None:
    rules = load_rules()
    roster = _bots(4)
    session = HotseatSession(roster, rules, seed=2024)
    session.run_bots()
    replayed = replay(roster, rules, 2024, session.history)
    assert snapshot(replayed) == snapshot(session.state)


def test_human_submit_ignores_stale_commands() -> None:
    session = HotseatSession([Participant("Ann"), Participant("Ben")], load_rules(), seed=3)
    assert session.submit(ResolveFatalOrEliminate()) is False
    assert session.history == []
    assert session.submit(Draw()) is True
    assert len(session.history) == 1
    view = session.view(0)
    assert view["viewer"] == 0
    assert len(view["hand"]) in (8, 9)  # type: ignore[arg-type]


def test_session_rejects_bad_roster() -> None:
    with pytest.raises(ValueError):
        HotseatSession(_bots(6), load_rules(), seed=0)


def test_parse_card_accepts_names_and_keys() -> None:
    assert parse_card("ddos event") is Card.ATTACK
    assert parse_card("ATTACK") is Card.ATTACK
    assert parse_card("rubber_duck") is Card.RUBBER_DUCK
    assert parse_card("nope") is None


def test_parse_command() -> None:
    aw = Phase.AWAIT_ACTION
    assert parse_command("draw", aw) == Draw()
    assert parse_command("play hack", aw) == PlayAction(Card.FAVOR)
    assert parse_command("pair coffee mug", aw) == StartCombo(Card.COFFEE_MUG, ComboMode.PAIR)
    assert parse_command("target 2", Phase.CHOOSING_FAVOR_TARGET) == ResolveFavorFrom(2)
    assert parse_command("target 2", Phase.CHOOSING_PAIR_TARGET) == ResolvePairTarget(2)
    assert parse_command("target 2", Phase.CHOOSING_TRIPLE_TARGET) == ResolveTripleTarget(2)
    assert parse_command("reinsert 4", Phase.RESOLVE_FATAL) == DefuseReinsert(4)
    assert parse_command("target x", aw) is None
    assert parse_command("", aw) is None


def test_hotseat_loop_quits_cleanly() -> None:
    roster = [Participant("Ann"), Participant("Bot", Controller.BOT)]
    session = HotseatSession(roster, load_rules(), seed=8)
    out = io.StringIO()
    result = play_hotseat(session, io.StringIO("\nhelp\nbogus\nquit\n"), out)
    text = out.getvalue()
    assert result is None
    assert "Pass the device to Ann" in text
    assert "Commands:" in text
    assert "does not work" in text


def test_simulate_cli(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log_path = tmp_path / "t.jsonl"
    code = main(["--telemetry", str(log_path), "simulate", "--players", "3", "--seed", "5", "--games", "2", "--check"])
    assert code == 0
    out = capsys.readouterr().out
    assert "game 1: seed=5" in out
    assert "game 2: seed=6" in out
    assert TelemetryService(log_path).count("match_finished") == 2
