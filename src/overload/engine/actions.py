from __future__ import annotations

from dataclasses import dataclass

from .types import Card, ComboMode

# Commands always act for the active player; the orchestrator decides whose input it accepts.


@dataclass(frozen=True)
class Draw:
    pass


@dataclass(frozen=True)
class PlayAction:
    card: Card


@dataclass(frozen=True)
class ResolveFavorFrom:
    target: int


@dataclass(frozen=True)
class StartCombo:
    card: Card
    mode: ComboMode


@dataclass(frozen=True)
class ResolvePairTarget:
    target: int


@dataclass(frozen=True)
class ResolvePairCardIndex:
    index: int


@dataclass(frozen=True)
class ResolveTripleTarget:
    target: int


@dataclass(frozen=True)
class ResolveTripleCardName:
    card: Card


@dataclass(frozen=True)
class ResolveFatalOrEliminate:
    pass


@dataclass(frozen=True)
class DefuseReinsert:
    position: int


Command = (
    Draw
    | PlayAction
    | ResolveFavorFrom
    | StartCombo
    | ResolvePairTarget
    | ResolvePairCardIndex
    | ResolveTripleTarget
    | ResolveTripleCardName
    | ResolveFatalOrEliminate
    | DefuseReinsert
)
