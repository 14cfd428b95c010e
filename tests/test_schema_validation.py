from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from overload.paths import get_paths
from overload.services.content import ContentError, ContentService


def test_content_schemas_validate() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    content.validate_all()


def _copy_content(tmp_path: Path) -> tuple[Path, dict[str, object]]:
    paths = get_paths()
    data_dir = tmp_path / "data"
    shutil.copytree(paths.data_dir, data_dir)
    raw = json.loads((data_dir / "deck_rules.json").read_text(encoding="utf-8"))
    return data_dir, raw


def _write(data_dir: Path, raw: object) -> ContentService:
    (data_dir / "deck_rules.json").write_text(json.dumps(raw), encoding="utf-8")
    return ContentService(data_dir, data_dir / "schemas")


def test_schema_rejects_unknown_card(tmp_path: Path) -> None:
    data_dir, raw = _copy_content(tmp_path)
    raw["tiers"]["small"]["Fatal Server Error"] = 3  # type: ignore[index]
    with pytest.raises(ContentError, match="Schema validation failed"):
        _write(data_dir, raw).load_deck_rules()


def test_combo_cards_must_share_a_quantity(tmp_path: Path) -> None:
    data_dir, raw = _copy_content(tmp_path)
    raw["tiers"]["large"]["Rubber Duck"] = 1  # type: ignore[index]
    with pytest.raises(ContentError, match="share one quantity"):
        _write(data_dir, raw).load_deck_rules()


def test_deck_too_small_for_five_players(tmp_path: Path) -> None:
    data_dir, raw = _copy_content(tmp_path)
    raw["hand_size"] = 20
    with pytest.raises(ContentError, match="players need more"):
        _write(data_dir, raw).load_deck_rules()


def test_missing_file(tmp_path: Path) -> None:
    content = ContentService(tmp_path, tmp_path)
    with pytest.raises(ContentError, match="Missing content file"):
        content.load_deck_rules()
