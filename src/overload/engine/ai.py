from __future__ import annotations

from dataclasses import dataclass

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
from .match import step
from .types import COMBO_CARDS, Card, ComboMode, GameState, Phase, RandomSource

TRIPLE_WISHLIST: tuple[Card, ...] = (Card.DEFUSE, Card.ATTACK, Card.SKIP, Card.FUTURE, Card.FAVOR)


@dataclass(frozen=True)
class BotSpec:
    """Bot tuning parameters.

    attack_chance: chance of an opportunistic Attack when nothing better applies
    skip_chance: chance of a Skip once the hand reaches `large_hand` cards
    favor_hand_limit: Favor is only played while the hand is at most this big
    low_deck: deck size at which a Shuffle is used to dilute risk
    """

    attack_chance: float = 0.25
    skip_chance: float = 0.35
    large_hand: int = 7
    favor_hand_limit: int = 5
    low_deck: int = 3


def choose_target(state: GameState) -> int:
    """Alive opponent with the largest hand; the first one wins ties."""
    opponents = state.opponents_of(state.turn)
    if not opponents:
        return state.next_alive(state.turn)
    best = opponents[0]
    best_size = len(state.hand_of(best))
    for pid in opponents[1:]:
        size = len(state.hand_of(pid))
        if size > best_size:
            best, best_size = pid, size
    return best


def choose_pair_index(state: GameState, rng: RandomSource) -> int:
    if state.combo is None or state.combo.target is None:
        return 0
    size = len(state.hand_of(state.combo.target))
    if size == 0:
        return 0
    return rng.randrange(size)


def choose_triple_card(state: GameState, rng: RandomSource) -> Card:
    hand = state.hand_of(state.turn)
    for card in TRIPLE_WISHLIST:
        if card not in hand:
            return card
    # Nothing valuable missing: deny an opponent a combo set instead.
    return COMBO_CARDS[rng.randrange(len(COMBO_CARDS))]


def choose_reinsert_position(state: GameState, rng: RandomSource) -> int:
    deck_size = len(state.deck)
    if deck_size <= 1:
        return deck_size
    return 1 + rng.randrange(deck_size)


def _choose_action(state: GameState, rng: RandomSource, spec: BotSpec) -> Command:
    hand = state.hand_of(state.turn)

    def has(card: Card) -> bool:
        return card in hand

    # Imminent bomb seen through a peek: avoid or deflect the draw.
    if Card.BOMB in state.peek:
        for card in (Card.SHUFFLE, Card.SKIP, Card.ATTACK):
            if has(card):
                return PlayAction(card)
        return Draw()

    if state.turns_owed > 1:
        for card in (Card.SKIP, Card.ATTACK):
            if has(card):
                return PlayAction(card)

    for card in COMBO_CARDS:
        if hand.count(card) >= 3:
            return StartCombo(card, ComboMode.TRIPLE)

    opponent_has_cards = any(state.hand_of(pid) for pid in state.opponents_of(state.turn))
    if has(Card.FAVOR) and opponent_has_cards and len(hand) <= spec.favor_hand_limit:
        return PlayAction(Card.FAVOR)

    for card in COMBO_CARDS:
        if hand.count(card) >= 2:
            return StartCombo(card, ComboMode.PAIR)

    if not has(Card.DEFUSE):
        if has(Card.FUTURE) and not state.peek:
            return PlayAction(Card.FUTURE)
        if has(Card.SHUFFLE) and len(state.deck) <= spec.low_deck:
            return PlayAction(Card.SHUFFLE)

    if has(Card.ATTACK) and rng.random() < spec.attack_chance:
        return PlayAction(Card.ATTACK)
    if has(Card.SKIP) and len(hand) >= spec.large_hand and rng.random() < spec.skip_chance:
        return PlayAction(Card.SKIP)
    return Draw()


def decide(state: GameState, rng: RandomSource, spec: BotSpec | None = None) -> Command:
    """Pick the next command for the active (bot-controlled) player.

    Read-only: the only side effect is consuming values from `rng`.
    """
    spec = spec or BotSpec()
    phase = state.phase

    if phase is Phase.RESOLVE_FATAL:
        if state.pending_fatal is not None and state.pending_fatal.defuse is not None:
            return DefuseReinsert(choose_reinsert_position(state, rng))
        return ResolveFatalOrEliminate()
    if phase is Phase.CHOOSING_FAVOR_TARGET:
        return ResolveFavorFrom(choose_target(state))
    if phase is Phase.CHOOSING_PAIR_TARGET:
        return ResolvePairTarget(choose_target(state))
    if phase is Phase.CHOOSING_PAIR_CARD:
        return ResolvePairCardIndex(choose_pair_index(state, rng))
    if phase is Phase.CHOOSING_TRIPLE_TARGET:
        return ResolveTripleTarget(choose_target(state))
    if phase is Phase.CHOOSING_TRIPLE_CARD:
        return ResolveTripleCardName(choose_triple_card(state, rng))
    return _choose_action(state, rng, spec)


def take_bot_turn(
    state: GameState,
    engine_rng: RandomSource,
    bot_rng: RandomSource,
    spec: BotSpec | None = None,
    limit: int = 64,
) -> tuple[GameState, list[Command]]:
    """Let the active bot act until control passes to another player or the game ends.

    Engine and bot randomness are kept apart so a recorded command list replays
    against the engine seed alone.
    """
    player = state.turn
    applied: list[Command] = []
    for _ in range(limit):
        if state.winner is not None or state.turn != player or not state.active_player.is_bot:
            break
        command = decide(state, bot_rng, spec)
        nxt = step(state, command, engine_rng)
        if nxt is state:
            break
        applied.append(command)
        state = nxt
    return state, applied
