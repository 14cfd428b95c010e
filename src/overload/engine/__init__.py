"""Deterministic, headless rules engine for System Overload.

IMPORTANT: This package performs no I/O; randomness is always injected.
"""

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
from .ai import BotSpec, decide, take_bot_turn
from .deck import DeckRules, build_deck
from .match import legal_commands, new_game, replay, step
from .types import Card, ComboMode, Controller, GameState, Participant, Phase

__all__ = [
    "BotSpec",
    "Card",
    "ComboMode",
    "Command",
    "Controller",
    "DeckRules",
    "DefuseReinsert",
    "Draw",
    "GameState",
    "Participant",
    "Phase",
    "PlayAction",
    "ResolveFatalOrEliminate",
    "ResolveFavorFrom",
    "ResolvePairCardIndex",
    "ResolvePairTarget",
    "ResolveTripleCardName",
    "ResolveTripleTarget",
    "StartCombo",
    "build_deck",
    "decide",
    "legal_commands",
    "new_game",
    "replay",
    "step",
    "take_bot_turn",
]
