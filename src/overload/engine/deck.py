from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from .types import Card, RandomSource

MIN_PLAYERS = 2
MAX_PLAYERS = 5


@dataclass(frozen=True)
class DeckRules:
    """Card quantities for one ruleset.

    `small` applies to 2-3 players, `large` to 4-5. Neither tier lists Bomb
    or Defuse: Bombs depend on the player count and every hand gets one
    Defuse on top of `spare_defuses` shuffled into the pile.
    """

    hand_size: int
    spare_defuses: int
    small: Mapping[Card, int] = field(hash=False)
    large: Mapping[Card, int] = field(hash=False)

    def __post_init__(self) -> None:
        for tier in ("small", "large"):
            value = getattr(self, tier)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, tier, MappingProxyType(dict(value)))

    def quantities(self, player_count: int) -> Mapping[Card, int]:
        return self.small if player_count <= 3 else self.large

    @staticmethod
    def bomb_count(player_count: int) -> int:
        return max(1, player_count - 1)


@dataclass(frozen=True)
class DealtDeck:
    deck: tuple[Card, ...]
    hands: tuple[tuple[Card, ...], ...]


def check_player_count(player_count: int) -> None:
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ValueError(f"Player count must be {MIN_PLAYERS}-{MAX_PLAYERS}, got {player_count}.")


def shuffled(cards: Sequence[Card], rng: RandomSource) -> tuple[Card, ...]:
    # Fisher-Yates, last index down
    out = list(cards)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randrange(i + 1)
        out[i], out[j] = out[j], out[i]
    return tuple(out)


def base_pile(player_count: int, rules: DeckRules) -> list[Card]:
    pile: list[Card] = []
    for card, qty in rules.quantities(player_count).items():
        pile.extend([card] * qty)
    pile.extend([Card.DEFUSE] * rules.spare_defuses)
    return pile


def build_deck(player_count: int, rules: DeckRules, rng: RandomSource) -> DealtDeck:
    check_player_count(player_count)

    pile = list(shuffled(base_pile(player_count, rules), rng))
    needed = rules.hand_size * player_count
    if needed > len(pile):
        raise ValueError(f"Ruleset has {len(pile)} cards, cannot deal {needed}.")

    hands: list[list[Card]] = [[] for _ in range(player_count)]
    for _ in range(rules.hand_size):
        for p in range(player_count):
            hands[p].append(pile.pop(0))
    for hand in hands:
        hand.append(Card.DEFUSE)

    pile.extend([Card.BOMB] * rules.bomb_count(player_count))
    return DealtDeck(deck=shuffled(pile, rng), hands=tuple(tuple(h) for h in hands))
