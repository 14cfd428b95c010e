from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

from overload.engine.actions import (
    Command,
    DefuseReinsert,
    Draw,
    PlayAction,
    ResolveFatalOrEliminate,
    ResolveFavorFrom,
    ResolvePairCardIndex,
    ResolvePairTarget,
    ResolveTripleCardName,
    ResolveTripleTarget,
    StartCombo,
)
from overload.engine.types import Card, ComboMode, Controller, Participant, Phase
from overload.paths import get_paths
from overload.services.content import ContentService
from overload.services.telemetry import TelemetryService

from .session import HotseatSession

logger = logging.getLogger(__name__)

HELP = """Commands:
  draw                     draw the top card
  play <card>              play Security Patch, DDoS Event, Sudo Random, Health Check or Hack
  pair <card> / triple <card>
  target <player id>       choose a target for Hack, a pair or a triple
  index <n>                pick a card position after a pair
  name <card>              name a card after a triple
  defuse                   resolve a drawn Fatal Server Error
  reinsert <depth>         put the defused card back (0 = top)
  help | quit"""


def parse_card(text: str) -> Card | None:
    key = text.strip().lower().replace("_", " ")
    for card in Card:
        if key in (card.value.lower(), card.name.lower().replace("_", " ")):
            return card
    return None


def parse_command(line: str, phase: Phase) -> Command | None:
    """Turn one line of user input into a command; None when it cannot be understood."""
    words = line.strip().split(maxsplit=1)
    if not words:
        return None
    verb = words[0].lower()
    arg = words[1] if len(words) > 1 else ""

    if verb == "draw":
        return Draw()
    if verb == "defuse":
        return ResolveFatalOrEliminate()
    if verb in ("play", "pair", "triple", "name"):
        card = parse_card(arg)
        if card is None:
            return None
        if verb == "play":
            return PlayAction(card)
        if verb == "name":
            return ResolveTripleCardName(card)
        return StartCombo(card, ComboMode.PAIR if verb == "pair" else ComboMode.TRIPLE)
    if verb in ("target", "index", "reinsert"):
        try:
            n = int(arg)
        except ValueError:
            return None
        if verb == "index":
            return ResolvePairCardIndex(n)
        if verb == "reinsert":
            return DefuseReinsert(n)
        if phase is Phase.CHOOSING_FAVOR_TARGET:
            return ResolveFavorFrom(n)
        if phase is Phase.CHOOSING_PAIR_TARGET:
            return ResolvePairTarget(n)
        return ResolveTripleTarget(n)
    return None


def _print_view(session: HotseatSession, viewer: int, out: TextIO, seen: int) -> int:
    view = session.view(viewer)
    log = view["log"]
    assert isinstance(log, list)
    for line in log[seen:]:
        print(f"  * {line}", file=out)
    players = view["players"]
    assert isinstance(players, list)
    for p in players:
        status = "" if p["alive"] else " (out)"
        print(f"  [{p['id']}] {p['name']}: {p['hand_size']} cards{status}", file=out)
    print(f"  deck: {view['deck_size']}  discard top: {view['discard_top']}", file=out)
    print(f"  your hand: {', '.join(view['hand'])}", file=out)  # type: ignore[arg-type]
    if view["peek"]:
        print(f"  top of deck: {', '.join(view['peek'])}", file=out)  # type: ignore[arg-type]
    print(f"  phase: {view['phase']}  turns owed: {view['turns_owed']}", file=out)
    return len(log)


def play_hotseat(session: HotseatSession, inp: TextIO, out: TextIO) -> str | None:
    seen: dict[int, int] = {}
    current: int | None = None
    while not session.is_over:
        session.run_bots()
        if session.is_over:
            break
        state = session.state
        me = state.turn
        if me != current:
            print(f"\n--- Pass the device to {state.active_player.name} and press Enter ---", file=out)
            if not inp.readline():
                return None
            current = me
        seen[me] = _print_view(session, me, out, seen.get(me, 0))
        print("> ", end="", file=out, flush=True)
        line = inp.readline()
        if not line or line.strip().lower() == "quit":
            return None
        if line.strip().lower() == "help":
            print(HELP, file=out)
            continue
        command = parse_command(line, state.phase)
        if command is None or not session.submit(command):
            print("That does not work right now. Type 'help' for commands.", file=out)
    print(f"\nWinner: {session.state.winner}", file=out)
    return session.state.winner


def _load(args: argparse.Namespace) -> tuple[ContentService, TelemetryService | None]:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    telemetry = TelemetryService(Path(args.telemetry)) if args.telemetry else None
    logger.debug("Content from %s, telemetry to %s", paths.data_dir, args.telemetry)
    return content, telemetry


def _cmd_simulate(args: argparse.Namespace) -> int:
    content, telemetry = _load(args)
    rules = content.load_deck_rules()
    wins: dict[str, int] = {}
    for g in range(args.games):
        roster = [Participant(f"Bot {i + 1}", Controller.BOT) for i in range(args.players)]
        session = HotseatSession(roster, rules, seed=args.seed + g, telemetry=telemetry, check=args.check)
        session.run_bots()
        winner = session.state.winner or "none"
        wins[winner] = wins.get(winner, 0) + 1
        print(f"game {g + 1}: seed={args.seed + g} winner={winner} commands={len(session.history)}")
    for name, n in sorted(wins.items()):
        print(f"{name}: {n}")
    return 0


def _cmd_play(args: argparse.Namespace) -> int:
    content, telemetry = _load(args)
    rules = content.load_deck_rules()
    bots = set(args.bot or [])
    roster = [Participant(n, Controller.BOT if n in bots else Controller.HUMAN) for n in args.name]
    roster.extend(Participant(n, Controller.BOT) for n in args.bot or [] if n not in args.name)
    try:
        session = HotseatSession(roster, rules, seed=args.seed, telemetry=telemetry)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    winner = play_hotseat(session, sys.stdin, sys.stdout)
    return 0 if winner is not None else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="overload")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    parser.add_argument("--telemetry", help="append match records to this JSONL file")
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="play bot-only matches")
    sim.add_argument("--players", type=int, default=4)
    sim.add_argument("--seed", type=int, default=0)
    sim.add_argument("--games", type=int, default=1)
    sim.add_argument("--check", action="store_true", help="verify game invariants after every move")
    sim.set_defaults(func=_cmd_simulate)

    play = sub.add_parser("play", help="hotseat game on this terminal")
    play.add_argument("--name", action="append", default=[], help="human player (repeatable)")
    play.add_argument("--bot", action="append", help="bot player (repeatable)")
    play.add_argument("--seed", type=int, default=0)
    play.set_defaults(func=_cmd_play)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "simulate" and not 2 <= args.players <= 5:
        parser.error("--players must be between 2 and 5")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
