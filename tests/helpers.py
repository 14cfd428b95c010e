from __future__ import annotations

from typing import Iterable, Sequence

from overload.engine.deck import DeckRules
from overload.engine.types import Card, Controller, GameState, Player
from overload.paths import get_paths
from overload.services.content import ContentService


def load_rules() -> DeckRules:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_deck_rules()


class ScriptedRandom:
    """RandomSource that replays fixed values; defaults once exhausted."""

    def __init__(self, ints: Iterable[int] = (), floats: Iterable[float] = ()) -> None:
        self._ints = list(ints)
        self._floats = list(floats)

    def randrange(self, stop: int) -> int:
        v = self._ints.pop(0) if self._ints else 0
        return v % stop

    def random(self) -> float:
        return self._floats.pop(0) if self._floats else 0.99


def make_state(
    hands: Sequence[Sequence[Card]],
    deck: Sequence[Card] = (),
    discard: Sequence[Card] = (),
    bots: Sequence[int] = (),
    **kwargs: object,
) -> GameState:
    """A hand-built table: players P0..Pn, P0 to act with one turn owed."""
    players = tuple(
        Player(id=i, name=f"P{i}", controller=Controller.BOT if i in bots else Controller.HUMAN)
        for i in range(len(hands))
    )
    fields: dict[str, object] = {"turn": 0, "turns_owed": 1}
    fields.update(kwargs)
    return GameState(
        players=players,
        deck=tuple(deck),
        discard=tuple(discard),
        hands=tuple(tuple(h) for h in hands),
        **fields,  # type: ignore[arg-type]
    )
