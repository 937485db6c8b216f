"""Load summary presets from YAML and check them against the base settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from app.presets.models import Preset, PresetSummary
from app.summarizer.models import SummaryConstraints

logger = logging.getLogger(__name__)


class PresetError(ValueError):
    """A preset file that cannot be served alongside the others."""


def _read_yaml(path: Path) -> Optional[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return None
    if not isinstance(data, dict):
        raise PresetError(f"{path.name}: expected a mapping, got {type(data).__name__}")
    return data


class PresetRegistry:
    """
    Presets keyed by id.

    When ``base`` is given, every preset is checked against it on load: a
    preset that sets only one side of the word window must still leave
    ``min_words <= max_words`` once the other side comes from ``base``.
    """

    def __init__(self, base: Optional[SummaryConstraints] = None) -> None:
        self.base = base
        self._presets: Dict[str, Preset] = {}
        self._sources: Dict[str, Path] = {}
        self._loaded = False

    def _check(self, preset: Preset, path: Path) -> None:
        if preset.id in self._presets:
            raise PresetError(
                f"{path.name}: duplicate preset id '{preset.id}' "
                f"(already defined in {self._sources[preset.id].name})"
            )
        if self.base is None:
            return
        min_words, max_words = preset.word_window(
            self.base.min_words, self.base.max_words
        )
        if min_words > max_words:
            raise PresetError(
                f"{path.name}: preset '{preset.id}' gives min_words={min_words} "
                f"above max_words={max_words} with the configured defaults"
            )

    def load_from_directory(self, presets_dir: str | Path) -> None:
        """
        Load every ``*.yaml`` file in ``presets_dir``, in name order.

        A missing directory leaves the registry empty. Unparseable YAML,
        schema violations and :class:`PresetError` abort the load.
        """
        presets_path = Path(presets_dir)
        if not presets_path.is_dir():
            logger.warning(f"Presets directory not found: {presets_dir}")
            return

        for path in sorted(presets_path.glob("*.yaml")):
            data = _read_yaml(path)
            if data is None:
                logger.warning(f"Skipping empty preset file: {path.name}")
                continue
            preset = Preset.model_validate(data)
            self._check(preset, path)
            self._presets[preset.id] = preset
            self._sources[preset.id] = path

        self._loaded = True
        logger.info(
            "Presets loaded: "
            + (", ".join(f"{p.id}@{p.version}" for p in self._presets.values()) or "none")
        )

    def get(self, preset_id: str) -> Optional[Preset]:
        return self._presets.get(preset_id)

    def list_presets(self) -> List[PresetSummary]:
        return [
            PresetSummary(
                id=preset.id,
                title=preset.title,
                version=preset.version,
                description=preset.description,
            )
            for preset in self._presets.values()
        ]

    def get_available_ids(self) -> List[str]:
        return list(self._presets)

    def is_loaded(self) -> bool:
        return self._loaded
