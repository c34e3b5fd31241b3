"""Static study catalogs (characters, achievements) loaded from YAML."""

import functools
from pathlib import Path

import yaml
from pydantic import TypeAdapter

from nihongo_srs.config import get_settings
from nihongo_srs.models.achievement import Achievement
from nihongo_srs.models.character import Character
from nihongo_srs.models.session import JLPTLevel, WritingSystem

_characters = TypeAdapter(list[Character])
_achievements = TypeAdapter(list[Achievement])


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@functools.lru_cache
def load_achievements(catalog_dir: Path | None = None) -> tuple[Achievement, ...]:
    """Load the achievement catalog in its declared order."""
    catalog_dir = catalog_dir or get_settings().catalog_dir
    data = _read_yaml(catalog_dir / "achievements.yaml")
    return tuple(_achievements.validate_python(data.get("achievements", [])))


@functools.lru_cache
def _load_writing_system(catalog_dir: Path, writing_system: WritingSystem) -> tuple[Character, ...]:
    data = _read_yaml(catalog_dir / "characters" / f"{writing_system.value}.yaml")
    return tuple(_characters.validate_python(data.get("characters", [])))


def load_characters(
    writing_system: WritingSystem | str,
    jlpt_level: JLPTLevel | str | None = None,
    catalog_dir: Path | None = None,
) -> list[Character]:
    """Load characters of one writing system, optionally narrowed to a JLPT level.

    The level filter only applies to kanji.
    """
    writing_system = WritingSystem(writing_system)
    catalog_dir = catalog_dir or get_settings().catalog_dir
    characters = list(_load_writing_system(catalog_dir, writing_system))
    if jlpt_level is not None and writing_system is WritingSystem.KANJI:
        level = JLPTLevel(jlpt_level)
        characters = [c for c in characters if c.jlpt_level == level]
    return characters


def load_all_characters(catalog_dir: Path | None = None) -> list[Character]:
    return [
        character
        for system in WritingSystem
        for character in load_characters(system, catalog_dir=catalog_dir)
    ]
