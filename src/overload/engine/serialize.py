from __future__ import annotations

from .actions import (
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
from .types import ExcludedFrom, GameState, LogEntry, Player, Public, Visibility, VisibleOnlyTo


def command_to_dict(c: Command) -> dict[str, object]:
    if isinstance(c, Draw):
        return {"type": "draw"}
    if isinstance(c, PlayAction):
        return {"type": "play", "card": c.card.value}
    if isinstance(c, ResolveFavorFrom):
        return {"type": "favor_from", "target": c.target}
    if isinstance(c, StartCombo):
        return {"type": "combo", "card": c.card.value, "mode": c.mode.value}
    if isinstance(c, ResolvePairTarget):
        return {"type": "pair_target", "target": c.target}
    if isinstance(c, ResolvePairCardIndex):
        return {"type": "pair_index", "index": c.index}
    if isinstance(c, ResolveTripleTarget):
        return {"type": "triple_target", "target": c.target}
    if isinstance(c, ResolveTripleCardName):
        return {"type": "triple_card", "card": c.card.value}
    if isinstance(c, ResolveFatalOrEliminate):
        return {"type": "resolve_fatal"}
    if isinstance(c, DefuseReinsert):
        return {"type": "reinsert", "position": c.position}
    # should be unreachable
    return {"type": "unknown"}


def _visibility_to_dict(v: Visibility) -> dict[str, object]:
    if isinstance(v, ExcludedFrom):
        return {"scope": "excluded_from", "ids": sorted(v.ids)}
    if isinstance(v, VisibleOnlyTo):
        return {"scope": "visible_only_to", "ids": sorted(v.ids)}
    assert isinstance(v, Public)
    return {"scope": "public"}


def _entry_to_dict(e: LogEntry) -> dict[str, object]:
    return {
        "kind": e.kind,
        "message": e.message,
        "visibility": _visibility_to_dict(e.visibility),
        "data": {k: list(v) if isinstance(v, tuple) else v for k, v in e.data.items()},
    }


def _player_to_dict(p: Player) -> dict[str, object]:
    return {"id": p.id, "name": p.name, "alive": p.alive, "controller": p.controller.value}


def visible_log(state: GameState, viewer: int) -> list[LogEntry]:
    return [e for e in state.log if e.visibility.allows(viewer)]


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the whole game state."""
    combo = state.combo
    pending = state.pending_fatal
    return {
        "players": [_player_to_dict(p) for p in state.players],
        "turn": state.turn,
        "turns_owed": state.turns_owed,
        "queued_turns": state.queued_turns,
        "phase": state.phase.value,
        "deck": [c.value for c in state.deck],
        "discard": [c.value for c in state.discard],
        "hands": [[c.value for c in h] for h in state.hands],
        "combo": None
        if combo is None
        else {"mode": combo.mode.value, "card": combo.card.value, "target": combo.target},
        "pending_fatal": None if pending is None else [c.value for c in pending.cards()],
        "peek": [c.value for c in state.peek],
        "log": [_entry_to_dict(e) for e in state.log],
        "winner": state.winner,
    }


def player_view(state: GameState, viewer: int) -> dict[str, object]:
    """What one seat is allowed to see; everything a renderer needs for that seat."""
    return {
        "viewer": viewer,
        "players": [
            {**_player_to_dict(p), "hand_size": len(state.hand_of(p.id))} for p in state.players
        ],
        "turn": state.turn,
        "turns_owed": state.turns_owed,
        "phase": state.phase.value,
        "hand": [c.value for c in state.hand_of(viewer)],
        "deck_size": len(state.deck),
        "discard_top": state.discard[-1].value if state.discard else None,
        "discard_size": len(state.discard),
        "peek": [c.value for c in state.peek] if viewer == state.turn else [],
        "log": [e.message for e in visible_log(state, viewer)],
        "winner": state.winner,
    }
