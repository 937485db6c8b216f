"""Summary presets: named tunable bundles loaded from YAML."""

from app.presets.loader import PresetError, PresetRegistry
from app.presets.models import Preset, PresetSummary

__all__ = ["Preset", "PresetError", "PresetSummary", "PresetRegistry"]
