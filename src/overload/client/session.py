from __future__ import annotations

import logging
import random
from typing import Sequence

from overload.engine.actions import Command
from overload.engine.ai import BotSpec, take_bot_turn
from overload.engine.deck import DeckRules
from overload.engine.match import check_invariants, new_game, step
from overload.engine.serialize import command_to_dict, player_view
from overload.engine.types import GameState, Participant
from overload.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


class HotseatSession:
    """Owns one match: the current snapshot, its randomness and its reporting.

    Commands go through `submit` one at a time; bots act through `run_bots`.
    """

    def __init__(
        self,
        participants: Sequence[Participant],
        rules: DeckRules,
        seed: int,
        telemetry: TelemetryService | None = None,
        bot_spec: BotSpec | None = None,
        check: bool = False,
    ) -> None:
        self.participants = tuple(participants)
        self.seed = seed
        self.telemetry = telemetry
        self.bot_spec = bot_spec
        self.check = check
        self.history: list[Command] = []

        self._engine_rng = random.Random(seed)
        self._bot_rng = random.Random(seed + 1)
        self.state: GameState = new_game(self.participants, rules, self._engine_rng)
        self._initial_total = self.state.total_cards()
        self._bomb_count = DeckRules.bomb_count(len(self.participants))
        self._reported = False

        logger.info("Match started: seed=%s players=%s", seed, [p.name for p in self.participants])
        if self.telemetry is not None:
            self.telemetry.log(
                "match_started",
                {"seed": seed, "players": [p.name for p in self.participants]},
            )

    @property
    def is_over(self) -> bool:
        return self.state.is_over

    def submit(self, command: Command) -> bool:
        """Apply one command for the active player. Returns False when it was ignored."""
        if self.state.is_over:
            return False
        nxt = step(self.state, command, self._engine_rng)
        if nxt is self.state:
            logger.debug("Ignored %s in phase %s", command_to_dict(command), self.state.phase.value)
            return False
        self.state = nxt
        self.history.append(command)
        self._after_change()
        return True

    def run_bots(self) -> list[Command]:
        """Let bot seats act until a human must decide or the match ends."""
        applied: list[Command] = []
        while not self.state.is_over and self.state.active_player.is_bot:
            actor = self.state.active_player.name
            self.state, cmds = take_bot_turn(self.state, self._engine_rng, self._bot_rng, self.bot_spec)
            if not cmds:
                logger.warning("Bot %s produced no applicable command", actor)
                break
            for c in cmds:
                logger.debug("%s: %s", actor, command_to_dict(c))
            applied.extend(cmds)
            self.history.extend(cmds)
            self._after_change()
        return applied

    def view(self, viewer: int) -> dict[str, object]:
        return player_view(self.state, viewer)

    def _after_change(self) -> None:
        if self.check:
            problems = check_invariants(self.state, self._initial_total, self._bomb_count)
            for p in problems:
                logger.error("Invariant broken after %d commands: %s", len(self.history), p)
        if self.state.winner is not None and not self._reported:
            self._reported = True
            logger.info("Match finished: winner=%s after %d commands", self.state.winner, len(self.history))
            if self.telemetry is not None:
                self.telemetry.log(
                    "match_finished",
                    {"seed": self.seed, "winner": self.state.winner, "commands": len(self.history)},
                )
