from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Protocol, Sequence


class Card(str, Enum):
    BOMB = "Fatal Server Error"
    DEFUSE = "Reboot"
    SKIP = "Security Patch"
    ATTACK = "DDoS Event"
    SHUFFLE = "Sudo Random"
    FUTURE = "Health Check"
    FAVOR = "Hack"

    # Combo-only: no single-card effect
    LEGACY_CODE = "Legacy Code"
    RUBBER_DUCK = "Rubber Duck"
    COFFEE_MUG = "Coffee Mug"
    STICKY_NOTE = "Sticky Note"
    SPARE_CABLE = "Spare Cable"


COMBO_CARDS: tuple[Card, ...] = (
    Card.LEGACY_CODE,
    Card.RUBBER_DUCK,
    Card.COFFEE_MUG,
    Card.STICKY_NOTE,
    Card.SPARE_CABLE,
)

ACTION_CARDS: tuple[Card, ...] = (Card.SKIP, Card.ATTACK, Card.SHUFFLE, Card.FUTURE, Card.FAVOR)


def is_comboable(card: Card) -> bool:
    return card not in (Card.BOMB, Card.DEFUSE)


class Controller(str, Enum):
    HUMAN = "human"
    BOT = "bot"


class Phase(str, Enum):
    AWAIT_ACTION = "await_action"
    RESOLVE_FATAL = "resolve_fatal"
    CHOOSING_FAVOR_TARGET = "choosing_favor_target"
    CHOOSING_PAIR_TARGET = "choosing_pair_target"
    CHOOSING_PAIR_CARD = "choosing_pair_card"
    CHOOSING_TRIPLE_TARGET = "choosing_triple_target"
    CHOOSING_TRIPLE_CARD = "choosing_triple_card"


class ComboMode(str, Enum):
    PAIR = "pair"
    TRIPLE = "triple"

    @property
    def size(self) -> int:
        return 2 if self is ComboMode.PAIR else 3


class RandomSource(Protocol):
    """Anything that can stand in for `random.Random` inside the engine."""

    def randrange(self, stop: int) -> int: ...

    def random(self) -> float: ...


@dataclass(frozen=True)
class Participant:
    name: str
    controller: Controller = Controller.HUMAN


@dataclass(frozen=True)
class Player:
    id: int
    name: str
    alive: bool = True
    controller: Controller = Controller.HUMAN

    @property
    def is_bot(self) -> bool:
        return self.controller is Controller.BOT


@dataclass(frozen=True)
class ComboContext:
    mode: ComboMode
    card: Card
    target: int | None = None


@dataclass(frozen=True)
class PendingFatal:
    bomb: Card = Card.BOMB
    defuse: Card | None = None  # held between defusing and reinsertion

    def cards(self) -> tuple[Card, ...]:
        if self.defuse is None:
            return (self.bomb,)
        return (self.bomb, self.defuse)


# Log visibility: one tagged variant per entry, projected per viewer at render time.


@dataclass(frozen=True)
class Public:
    def allows(self, viewer: int) -> bool:
        return True


@dataclass(frozen=True)
class ExcludedFrom:
    ids: frozenset[int]

    def allows(self, viewer: int) -> bool:
        return viewer not in self.ids


@dataclass(frozen=True)
class VisibleOnlyTo:
    ids: frozenset[int]

    def allows(self, viewer: int) -> bool:
        return viewer in self.ids


Visibility = Public | ExcludedFrom | VisibleOnlyTo

PUBLIC = Public()


def next_alive(players: Sequence[Player], after: int) -> int:
    """Seat of the first living player after `after`, wrapping; `after` itself if nobody else is alive."""
    n = len(players)
    for offset in range(1, n + 1):
        candidate = (after + offset) % n
        if players[candidate].alive:
            return candidate
    return after


@dataclass(frozen=True)
class LogEntry:
    kind: str
    message: str
    visibility: Visibility = PUBLIC
    # read-only and left out of the hash; values are scalars or tuples
    data: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of one match. Replaced wholesale on every accepted command."""

    players: tuple[Player, ...]
    turn: int
    turns_owed: int
    deck: tuple[Card, ...]  # index 0 is the top
    discard: tuple[Card, ...]
    hands: tuple[tuple[Card, ...], ...]  # hands[player_id]
    phase: Phase = Phase.AWAIT_ACTION
    combo: ComboContext | None = None
    pending_fatal: PendingFatal | None = None
    queued_turns: int = 0  # Attack hand-off for the next alive player
    peek: tuple[Card, ...] = ()
    log: tuple[LogEntry, ...] = ()
    winner: str | None = None

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def active_player(self) -> Player:
        return self.players[self.turn]

    def hand_of(self, player: int) -> tuple[Card, ...]:
        return self.hands[player]

    def alive_ids(self) -> list[int]:
        return [p.id for p in self.players if p.alive]

    def opponents_of(self, player: int) -> list[int]:
        return [p.id for p in self.players if p.alive and p.id != player]

    def next_alive(self, after: int) -> int:
        return next_alive(self.players, after)

    def total_cards(self) -> int:
        held = len(self.pending_fatal.cards()) if self.pending_fatal is not None else 0
        return len(self.deck) + len(self.discard) + sum(len(h) for h in self.hands) + held

    def bombs_outside_hands(self) -> int:
        held = self.pending_fatal.cards().count(Card.BOMB) if self.pending_fatal is not None else 0
        return self.deck.count(Card.BOMB) + self.discard.count(Card.BOMB) + held
