from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Iterable, Sequence

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
from .deck import DeckRules, build_deck, check_player_count, shuffled
from .types import (
    ACTION_CARDS,
    PUBLIC,
    Card,
    ComboContext,
    ComboMode,
    ExcludedFrom,
    GameState,
    LogEntry,
    Participant,
    PendingFatal,
    Phase,
    Player,
    RandomSource,
    Visibility,
    VisibleOnlyTo,
    is_comboable,
    next_alive,
)

PEEK_DEPTH = 3
ATTACK_TURNS = 2


@dataclass
class _Draft:
    """Mutable working copy of a GameState, frozen back once a command is applied."""

    players: list[Player]
    turn: int
    turns_owed: int
    deck: list[Card]
    discard: list[Card]
    hands: list[list[Card]]
    phase: Phase
    combo: ComboContext | None
    pending_fatal: PendingFatal | None
    queued_turns: int
    peek: tuple[Card, ...]
    log: list[LogEntry]
    winner: str | None

    @classmethod
    def of(cls, state: GameState) -> "_Draft":
        return cls(
            players=list(state.players),
            turn=state.turn,
            turns_owed=state.turns_owed,
            deck=list(state.deck),
            discard=list(state.discard),
            hands=[list(h) for h in state.hands],
            phase=state.phase,
            combo=state.combo,
            pending_fatal=state.pending_fatal,
            queued_turns=state.queued_turns,
            peek=state.peek,
            log=list(state.log),
            winner=state.winner,
        )

    def freeze(self) -> GameState:
        return GameState(
            players=tuple(self.players),
            turn=self.turn,
            turns_owed=self.turns_owed,
            deck=tuple(self.deck),
            discard=tuple(self.discard),
            hands=tuple(tuple(h) for h in self.hands),
            phase=self.phase,
            combo=self.combo,
            pending_fatal=self.pending_fatal,
            queued_turns=self.queued_turns,
            peek=self.peek,
            log=tuple(self.log),
            winner=self.winner,
        )

    def name(self, player: int) -> str:
        return self.players[player].name

    def next_alive(self, after: int) -> int:
        return next_alive(self.players, after)


def _log(
    d: _Draft, kind: str, message: str, visibility: Visibility = PUBLIC, **data: object
) -> None:
    d.log.append(LogEntry(kind=kind, message=message, visibility=visibility, data=data))


def _only(*ids: int) -> VisibleOnlyTo:
    return VisibleOnlyTo(frozenset(ids))


def _except(*ids: int) -> ExcludedFrom:
    return ExcludedFrom(frozenset(ids))


def _remove_one(hand: list[Card], card: Card) -> bool:
    try:
        hand.remove(card)
    except ValueError:
        return False
    return True


def _advance_turn(d: _Draft) -> None:
    d.peek = ()
    if d.turns_owed > 1:
        d.turns_owed -= 1
        _log(d, "turn_continues", f"{d.name(d.turn)} still owes {d.turns_owed} turn(s).",
             player=d.turn, turns_owed=d.turns_owed)
        return

    nxt = d.next_alive(d.turn)
    if d.queued_turns > 0:
        d.turns_owed = d.queued_turns
        d.queued_turns = 0
    else:
        d.turns_owed = 1
    d.turn = nxt
    _log(d, "turn_started", f"{d.name(nxt)}'s turn ({d.turns_owed} to take).",
         player=nxt, turns_owed=d.turns_owed)


def _give(d: _Draft, source: int, index: int, receiver: int, kind: str) -> Card:
    card = d.hands[source].pop(index)
    d.hands[receiver].append(card)
    _log(d, kind, f"{d.name(receiver)} took {card.value} from {d.name(source)}.",
         _only(receiver, source), player=receiver, target=source, card=card.value)
    _log(d, kind, f"{d.name(receiver)} took a card from {d.name(source)}.",
         _except(receiver, source), player=receiver, target=source)
    return card


def _is_open_target(state: GameState, target: int) -> bool:
    if target < 0 or target >= len(state.players):
        return False
    return target != state.turn and state.players[target].alive


def _can_act(state: GameState) -> bool:
    return state.phase is Phase.AWAIT_ACTION and state.pending_fatal is None


def _as_card(value: object) -> Card | None:
    """The Card a command names, accepting its display string; None for anything else."""
    try:
        return Card(value)
    except ValueError:
        return None


# --- command handlers -------------------------------------------------------


def _draw(state: GameState, rng: RandomSource) -> GameState:
    if not _can_act(state):
        return state
    if not state.deck and not state.discard:
        return state

    d = _Draft.of(state)
    me = d.turn
    if not d.deck:
        d.deck = list(shuffled(d.discard, rng))
        d.discard = []
        _log(d, "deck_reshuffled", "The discard pile was shuffled back into the deck.")

    card = d.deck.pop(0)
    if card is Card.BOMB:
        d.pending_fatal = PendingFatal(bomb=card)
        d.phase = Phase.RESOLVE_FATAL
        _log(d, "drew_bomb", f"{d.name(me)} drew a {card.value}!", player=me)
        return d.freeze()

    d.hands[me].append(card)
    _log(d, "drew", f"You drew {card.value}.", _only(me), player=me, card=card.value)
    _log(d, "drew", f"{d.name(me)} drew a card.", _except(me), player=me)
    _advance_turn(d)
    return d.freeze()


def _play_action(state: GameState, action: PlayAction, rng: RandomSource) -> GameState:
    if not _can_act(state):
        return state
    card = _as_card(action.card)
    if card not in ACTION_CARDS or card not in state.hand_of(state.turn):
        return state

    d = _Draft.of(state)
    me = d.turn
    _remove_one(d.hands[me], card)
    d.discard.append(card)
    _log(d, "played", f"{d.name(me)} played {card.value}.", player=me, card=card.value)

    if card is Card.SKIP:
        _advance_turn(d)
    elif card is Card.ATTACK:
        # An attacked player passes on their remaining turns plus two more.
        carried = d.turns_owed if d.turns_owed > 1 else 0
        d.queued_turns += carried + ATTACK_TURNS
        victim = d.next_alive(me)
        _log(d, "attack", f"{d.name(victim)} must take {d.queued_turns} turns.",
             player=me, target=victim, turns=d.queued_turns)
        d.turns_owed = 1
        _advance_turn(d)
    elif card is Card.SHUFFLE:
        d.deck = list(shuffled(d.deck, rng))
        d.peek = ()
        _log(d, "shuffled", "The deck was shuffled.", player=me)
    elif card is Card.FUTURE:
        d.peek = tuple(d.deck[:PEEK_DEPTH])
        shown = ", ".join(c.value for c in d.peek) or "nothing"
        _log(d, "peek", f"Top of the deck: {shown}.", _only(me),
             player=me, cards=tuple(c.value for c in d.peek))
        _log(d, "peek", f"{d.name(me)} looked at the top of the deck.", _except(me), player=me)
    elif card is Card.FAVOR:
        d.phase = Phase.CHOOSING_FAVOR_TARGET
    return d.freeze()


def _resolve_favor(state: GameState, action: ResolveFavorFrom, rng: RandomSource) -> GameState:
    if state.phase is not Phase.CHOOSING_FAVOR_TARGET or not _is_open_target(state, action.target):
        return state

    d = _Draft.of(state)
    d.phase = Phase.AWAIT_ACTION
    target_hand = d.hands[action.target]
    if not target_hand:
        _log(d, "favor_empty", f"{d.name(action.target)} had no cards to give.",
             player=d.turn, target=action.target)
        return d.freeze()
    _give(d, action.target, rng.randrange(len(target_hand)), d.turn, "favor")
    return d.freeze()


def _start_combo(state: GameState, action: StartCombo) -> GameState:
    card = _as_card(action.card)
    if not _can_act(state) or card is None or not is_comboable(card):
        return state
    try:
        mode = ComboMode(action.mode)
    except ValueError:
        return state
    if state.hand_of(state.turn).count(card) < mode.size:
        return state

    d = _Draft.of(state)
    me = d.turn
    for _ in range(mode.size):
        _remove_one(d.hands[me], card)
        d.discard.append(card)
    d.combo = ComboContext(mode=mode, card=card)
    if mode is ComboMode.PAIR:
        d.phase = Phase.CHOOSING_PAIR_TARGET
    else:
        d.phase = Phase.CHOOSING_TRIPLE_TARGET
    _log(d, "combo", f"{d.name(me)} played a {mode.value} of {card.value}.",
         player=me, card=card.value, mode=mode.value)
    return d.freeze()


def _resolve_pair_target(state: GameState, action: ResolvePairTarget, rng: RandomSource) -> GameState:
    if state.phase is not Phase.CHOOSING_PAIR_TARGET or state.combo is None:
        return state
    if not _is_open_target(state, action.target):
        return state

    d = _Draft.of(state)
    # Positions must carry no information for the chooser.
    d.hands[action.target] = list(shuffled(d.hands[action.target], rng))
    d.combo = replace(state.combo, target=action.target)
    d.phase = Phase.CHOOSING_PAIR_CARD
    _log(d, "pair_target", f"{d.name(d.turn)} targets {d.name(action.target)}.",
         player=d.turn, target=action.target)
    return d.freeze()


def _resolve_pair_card(state: GameState, action: ResolvePairCardIndex) -> GameState:
    if state.phase is not Phase.CHOOSING_PAIR_CARD or state.combo is None or state.combo.target is None:
        return state

    d = _Draft.of(state)
    target = state.combo.target
    d.phase = Phase.AWAIT_ACTION
    d.combo = None
    target_hand = d.hands[target]
    if not target_hand:
        _log(d, "pair_empty", f"{d.name(target)} had no cards to steal.", player=d.turn, target=target)
        return d.freeze()
    index = min(max(action.index, 0), len(target_hand) - 1)
    _give(d, target, index, d.turn, "pair_steal")
    return d.freeze()


def _resolve_triple_target(state: GameState, action: ResolveTripleTarget) -> GameState:
    if state.phase is not Phase.CHOOSING_TRIPLE_TARGET or state.combo is None:
        return state
    if not _is_open_target(state, action.target):
        return state

    d = _Draft.of(state)
    d.combo = replace(state.combo, target=action.target)
    d.phase = Phase.CHOOSING_TRIPLE_CARD
    _log(d, "triple_target", f"{d.name(d.turn)} targets {d.name(action.target)}.",
         player=d.turn, target=action.target)
    return d.freeze()


def _resolve_triple_card(state: GameState, action: ResolveTripleCardName) -> GameState:
    if state.phase is not Phase.CHOOSING_TRIPLE_CARD or state.combo is None or state.combo.target is None:
        return state
    card = _as_card(action.card)
    if card is None:
        return state

    d = _Draft.of(state)
    me = d.turn
    target = state.combo.target
    d.phase = Phase.AWAIT_ACTION
    d.combo = None
    if card not in d.hands[target]:
        _log(d, "triple_failed", f"{d.name(target)} has no {card.value}.",
             player=me, target=target, card=card.value)
        return d.freeze()

    _remove_one(d.hands[target], card)
    d.hands[me].append(card)
    _log(d, "triple_steal", f"{d.name(me)} took {card.value} from {d.name(target)}.",
         player=me, target=target, card=card.value)
    return d.freeze()


def _resolve_fatal(state: GameState) -> GameState:
    if state.phase is not Phase.RESOLVE_FATAL or state.pending_fatal is None:
        return state
    if state.pending_fatal.defuse is not None:
        return state

    d = _Draft.of(state)
    me = d.turn
    if _remove_one(d.hands[me], Card.DEFUSE):
        d.pending_fatal = replace(state.pending_fatal, defuse=Card.DEFUSE)
        _log(d, "defused", f"{d.name(me)} used {Card.DEFUSE.value}.", player=me)
        return d.freeze()

    d.players[me] = replace(d.players[me], alive=False)
    d.discard.append(state.pending_fatal.bomb)
    d.pending_fatal = None
    d.phase = Phase.AWAIT_ACTION
    d.turns_owed = 0
    d.queued_turns = 0
    d.peek = ()
    _log(d, "eliminated", f"{d.name(me)} was eliminated.", player=me)

    alive = [p for p in d.players if p.alive]
    if len(alive) == 1:
        d.winner = alive[0].name
        _log(d, "game_over", f"{d.winner} wins!", player=alive[0].id)
        return d.freeze()
    _advance_turn(d)
    return d.freeze()


def _defuse_reinsert(state: GameState, action: DefuseReinsert) -> GameState:
    pending = state.pending_fatal
    if state.phase is not Phase.RESOLVE_FATAL or pending is None or pending.defuse is None:
        return state

    d = _Draft.of(state)
    me = d.turn
    position = min(max(action.position, 0), len(d.deck))
    d.deck.insert(position, pending.bomb)
    d.discard.append(pending.defuse)
    d.pending_fatal = None
    d.phase = Phase.AWAIT_ACTION
    _log(d, "reinserted", f"You put the {pending.bomb.value} back at depth {position}.",
         _only(me), player=me, position=position)
    _log(d, "reinserted", f"{d.name(me)} put the {pending.bomb.value} back into the deck.",
         _except(me), player=me)
    _advance_turn(d)
    return d.freeze()


def step(state: GameState, command: Command, rng: RandomSource) -> GameState:
    """Apply a single command for the active player.

    Returns a new snapshot, or `state` itself when the command does not apply
    to the current phase and hands. Never raises for a well-formed command.
    """
    if state.winner is not None:
        return state

    if isinstance(command, Draw):
        return _draw(state, rng)
    if isinstance(command, PlayAction):
        return _play_action(state, command, rng)
    if isinstance(command, ResolveFavorFrom):
        return _resolve_favor(state, command, rng)
    if isinstance(command, StartCombo):
        return _start_combo(state, command)
    if isinstance(command, ResolvePairTarget):
        return _resolve_pair_target(state, command, rng)
    if isinstance(command, ResolvePairCardIndex):
        return _resolve_pair_card(state, command)
    if isinstance(command, ResolveTripleTarget):
        return _resolve_triple_target(state, command)
    if isinstance(command, ResolveTripleCardName):
        return _resolve_triple_card(state, command)
    if isinstance(command, ResolveFatalOrEliminate):
        return _resolve_fatal(state)
    if isinstance(command, DefuseReinsert):
        return _defuse_reinsert(state, command)
    return state


def new_game(participants: Sequence[Participant], rules: DeckRules, rng: RandomSource) -> GameState:
    check_player_count(len(participants))
    dealt = build_deck(len(participants), rules, rng)
    players = tuple(
        Player(id=i, name=p.name, alive=True, controller=p.controller) for i, p in enumerate(participants)
    )
    names = ", ".join(p.name for p in players)
    log = (
        LogEntry(kind="game_started", message=f"New game: {names}.", data={"players": len(players)}),
        LogEntry(kind="turn_started", message=f"{players[0].name}'s turn (1 to take).",
                 data={"player": 0, "turns_owed": 1}),
    )
    return GameState(
        players=players,
        turn=0,
        turns_owed=1,
        deck=dealt.deck,
        discard=(),
        hands=dealt.hands,
        log=log,
    )


def legal_commands(state: GameState) -> list[Command]:
    """Every command `step` would accept right now."""
    if state.winner is not None:
        return []
    me = state.turn
    hand = state.hand_of(me)
    opponents = state.opponents_of(me)
    out: list[Command] = []

    if state.phase is Phase.AWAIT_ACTION:
        if state.deck or state.discard:
            out.append(Draw())
        for card in ACTION_CARDS:
            if card in hand:
                out.append(PlayAction(card))
        for card in dict.fromkeys(hand):
            if not is_comboable(card):
                continue
            count = hand.count(card)
            if count >= 2:
                out.append(StartCombo(card, ComboMode.PAIR))
            if count >= 3:
                out.append(StartCombo(card, ComboMode.TRIPLE))
    elif state.phase is Phase.CHOOSING_FAVOR_TARGET:
        out.extend(ResolveFavorFrom(t) for t in opponents)
    elif state.phase is Phase.CHOOSING_PAIR_TARGET:
        out.extend(ResolvePairTarget(t) for t in opponents)
    elif state.phase is Phase.CHOOSING_PAIR_CARD:
        assert state.combo is not None and state.combo.target is not None
        size = len(state.hand_of(state.combo.target))
        out.extend(ResolvePairCardIndex(i) for i in range(max(1, size)))
    elif state.phase is Phase.CHOOSING_TRIPLE_TARGET:
        out.extend(ResolveTripleTarget(t) for t in opponents)
    elif state.phase is Phase.CHOOSING_TRIPLE_CARD:
        out.extend(ResolveTripleCardName(c) for c in Card)
    elif state.phase is Phase.RESOLVE_FATAL and state.pending_fatal is not None:
        if state.pending_fatal.defuse is None:
            out.append(ResolveFatalOrEliminate())
        else:
            out.extend(DefuseReinsert(p) for p in range(len(state.deck) + 1))
    return out


def check_invariants(state: GameState, initial_total: int, bomb_count: int) -> list[str]:
    """Return a description of every broken game invariant (empty when all hold)."""
    problems: list[str] = []
    if state.total_cards() != initial_total:
        problems.append(f"card count {state.total_cards()} != {initial_total}")
    if state.bombs_outside_hands() != bomb_count:
        problems.append(f"{state.bombs_outside_hands()} bombs outside hands, expected {bomb_count}")
    if any(Card.BOMB in h for h in state.hands):
        problems.append("a bomb is in a hand")
    alive = state.alive_ids()
    if (state.winner is not None) != (len(alive) == 1):
        problems.append(f"winner={state.winner!r} with {len(alive)} alive")
    if state.winner is None and state.phase is Phase.AWAIT_ACTION and state.turns_owed < 1:
        problems.append("active player owes no turns")
    if state.winner is None and not state.players[state.turn].alive:
        problems.append("active player is eliminated")
    return problems


def replay(
    participants: Sequence[Participant],
    rules: DeckRules,
    seed: int,
    commands: Iterable[Command],
) -> GameState:
    rng = random.Random(seed)
    state = new_game(participants, rules, rng)
    for c in commands:
        state = step(state, c, rng)
        if state.winner is not None:
            break
    return state
