from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from jsonschema import Draft202012Validator

from overload.engine.deck import MAX_PLAYERS, DeckRules
from overload.engine.types import COMBO_CARDS, Card


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _parse_tier(raw: object, name: str) -> Mapping[Card, int]:
    if not isinstance(raw, dict):
        raise ContentError(f"tier {name} must be an object")
    tier: dict[Card, int] = {}
    for card_name, qty in raw.items():
        try:
            card = Card(card_name)
        except ValueError as e:
            raise ContentError(f"Unknown card in tier {name}: {card_name}") from e
        if not isinstance(qty, int):
            raise ContentError(f"Quantity for {card_name} must be int")
        tier[card] = qty

    combo_counts = {tier.get(c, 0) for c in COMBO_CARDS}
    if len(combo_counts) != 1:
        raise ContentError(f"Combo-only cards in tier {name} must share one quantity")
    return MappingProxyType(tier)


def _check_playable(rules: DeckRules) -> None:
    # The largest table must still leave cards to draw after dealing.
    pile = sum(rules.large.values()) + rules.spare_defuses
    if pile <= rules.hand_size * MAX_PLAYERS:
        raise ContentError(
            f"Large tier has {pile} cards; {MAX_PLAYERS} players need more than "
            f"{rules.hand_size * MAX_PLAYERS}"
        )


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_deck_rules(self) -> DeckRules:
        path = self._data_dir / "deck_rules.json"
        schema = _load_json(self._schema_dir / "deck_rules.schema.json")
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("deck_rules.json must be an object")

        tiers = raw.get("tiers")
        if not isinstance(tiers, dict):
            raise ContentError("deck_rules.json.tiers must be an object")

        rules = DeckRules(
            hand_size=_require_int(raw, "hand_size"),
            spare_defuses=_require_int(raw, "spare_defuses"),
            small=_parse_tier(tiers.get("small"), "small"),
            large=_parse_tier(tiers.get("large"), "large"),
        )
        _check_playable(rules)
        return rules

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_deck_rules()
