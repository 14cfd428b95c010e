from __future__ import annotations

from dataclasses import replace

from overload.engine.actions import (
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
from overload.engine.ai import BotSpec, choose_target, choose_triple_card, decide
from overload.engine.types import COMBO_CARDS, Card, ComboContext, ComboMode, PendingFatal, Phase
from helpers import ScriptedRandom, make_state

D = Card.DEFUSE
B = Card.BOMB
DECK = [Card.SKIP] * 10


def _decide(hand, others=((D,),), deck=DECK, floats=(), **kwargs):  # type: ignore[no-untyped-def]
    state = make_state([hand, *others], deck=deck, bots=[0], **kwargs)
    return decide(state, ScriptedRandom(floats=floats))


def test_peeked_bomb_prefers_shuffle_then_skip_then_attack() -> None:
    peek = (Card.SKIP, B, Card.FUTURE)
    assert _decide([Card.ATTACK, Card.SKIP, Card.SHUFFLE], peek=peek) == PlayAction(Card.SHUFFLE)
    assert _decide([Card.ATTACK, Card.SKIP], peek=peek) == PlayAction(Card.SKIP)
    assert _decide([Card.ATTACK], peek=peek) == PlayAction(Card.ATTACK)
    assert _decide([Card.FAVOR, Card.FUTURE], peek=peek) == Draw()


def test_forced_turns_offloaded() -> None:
    assert _decide([D, Card.SKIP, Card.ATTACK], turns_owed=3) == PlayAction(Card.SKIP)
    assert _decide([D, Card.ATTACK], turns_owed=2) == PlayAction(Card.ATTACK)


def test_triple_before_favor_and_pair() -> None:
    duck = Card.RUBBER_DUCK
    hand = [duck, duck, duck, Card.FAVOR, Card.COFFEE_MUG, Card.COFFEE_MUG]
    assert _decide(hand) == StartCombo(duck, ComboMode.TRIPLE)


def test_favor_when_hand_is_light_and_opponent_has_cards() -> None:
    assert _decide([Card.FAVOR, D]) == PlayAction(Card.FAVOR)
    # empty opponents
    assert _decide([Card.FAVOR, D], others=((),)) == Draw()
    # oversized hand: falls through to the pair
    mug = Card.COFFEE_MUG
    big = [Card.FAVOR, D, mug, mug, Card.SHUFFLE, Card.SHUFFLE]
    assert _decide(big) == StartCombo(mug, ComboMode.PAIR)


def test_without_defuse_seek_information_or_dilute() -> None:
    assert _decide([Card.FUTURE]) == PlayAction(Card.FUTURE)
    # already peeked and nothing fatal seen
    assert _decide([Card.FUTURE], peek=(Card.SKIP,)) == Draw()
    assert _decide([Card.SHUFFLE], deck=[Card.SKIP] * 3) == PlayAction(Card.SHUFFLE)
    assert _decide([Card.SHUFFLE], deck=[Card.SKIP] * 4) == Draw()
    # with a defuse the bot just draws
    assert _decide([Card.FUTURE, D]) == Draw()


def test_random_attack_and_skip() -> None:
    assert _decide([Card.ATTACK, D], floats=[0.1]) == PlayAction(Card.ATTACK)
    assert _decide([Card.ATTACK, D], floats=[0.9]) == Draw()

    big = [Card.SKIP, D, Card.SHUFFLE, Card.FAVOR, Card.LEGACY_CODE, Card.COFFEE_MUG, Card.STICKY_NOTE]
    assert _decide(big, floats=[0.2]) == PlayAction(Card.SKIP)
    assert _decide(big[:-1], floats=[0.2]) == Draw()


def test_target_is_largest_hand_first_on_ties() -> None:
    state = make_state([[D], [D, D], [D, D, D], [D, D, D]], deck=DECK, bots=[0])
    assert choose_target(state) == 2
    dead = replace(state, players=tuple(replace(p, alive=p.id != 2) for p in state.players))
    assert choose_target(dead) == 3


def test_triple_wishlist() -> None:
    rng = ScriptedRandom(ints=[3])
    state = make_state([[Card.ATTACK], [D]], deck=DECK)
    assert choose_triple_card(state, rng) is D
    state = make_state([[D, Card.ATTACK, Card.SKIP], [D]], deck=DECK)
    assert choose_triple_card(state, rng) is Card.FUTURE
    full = make_state([[D, Card.ATTACK, Card.SKIP, Card.FUTURE, Card.FAVOR], [D]], deck=DECK)
    assert choose_triple_card(full, rng) is COMBO_CARDS[3]


def test_phase_dispatch() -> None:
    rng = ScriptedRandom(ints=[2, 1])
    base = make_state([[Card.SKIP], [D], [D, D]], deck=DECK, bots=[0])

    assert decide(replace(base, phase=Phase.CHOOSING_FAVOR_TARGET), rng) == ResolveFavorFrom(2)
    pair = ComboContext(ComboMode.PAIR, Card.RUBBER_DUCK)
    assert decide(replace(base, phase=Phase.CHOOSING_PAIR_TARGET, combo=pair), rng) == ResolvePairTarget(2)
    picking = replace(base, phase=Phase.CHOOSING_PAIR_CARD, combo=replace(pair, target=2))
    assert decide(picking, rng) == ResolvePairCardIndex(0)
    triple = ComboContext(ComboMode.TRIPLE, Card.RUBBER_DUCK)
    assert decide(replace(base, phase=Phase.CHOOSING_TRIPLE_TARGET, combo=triple), rng) == ResolveTripleTarget(2)
    naming = replace(base, phase=Phase.CHOOSING_TRIPLE_CARD, combo=replace(triple, target=2))
    assert decide(naming, rng) == ResolveTripleCardName(D)


def test_fatal_resolution_and_reinsert_depth() -> None:
    fatal = make_state([[D], [D]], deck=DECK, bots=[0], phase=Phase.RESOLVE_FATAL, pending_fatal=PendingFatal())
    assert decide(fatal, ScriptedRandom()) == ResolveFatalOrEliminate()

    limbo = replace(fatal, pending_fatal=PendingFatal(defuse=D))
    cmd = decide(limbo, ScriptedRandom(ints=[0]))
    assert cmd == DefuseReinsert(1)
    cmd = decide(limbo, ScriptedRandom(ints=[9]))
    assert cmd == DefuseReinsert(10)

    empty = replace(limbo, deck=())
    assert decide(empty, ScriptedRandom()) == DefuseReinsert(0)


def test_bot_tuning_changes_thresholds() -> None:
    state = make_state([[Card.ATTACK, D], [D]], deck=DECK, bots=[0])
    never = BotSpec(attack_chance=0.0)
    assert decide(state, ScriptedRandom(floats=[0.0]), never) == Draw()
