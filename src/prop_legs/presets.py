"""Named scoring-weight presets.

A preset is passed explicitly into every scoring call; there is no process-wide active
preset, so concurrent runs with different presets cannot interfere.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

PRESET_ALIASES = {
    "reliabilitymax": "reliability_max",
    "reliability": "reliability_max",
    "default": "balanced",
}


class UnknownPresetError(ValueError):
    """Raised when a preset key is not in the closed preset registry."""


@dataclass(frozen=True)
class WeightConfig:
    key: str
    name: str
    description: str
    pattern: float
    hit_rate: float
    confidence: float
    hit_rate_default: float = 0.6
    missing_hit_rate_penalty: float = -0.5
    small_sample_penalty: float = -0.5
    small_sample_floor: int = 10

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_PRESETS: tuple[WeightConfig, ...] = (
    WeightConfig(
        key="balanced",
        name="Balanced",
        description="Stable outputs, confidence matters, no weird flips.",
        pattern=1.0,
        hit_rate=6.0,
        confidence=0.25,
        hit_rate_default=0.6,
        missing_hit_rate_penalty=-0.5,
    ),
    WeightConfig(
        key="reliability_max",
        name="Reliability Max",
        description="Hit rate heavier, punishes missing data harder.",
        pattern=1.1,
        hit_rate=7.0,
        confidence=0.22,
        hit_rate_default=0.58,
        missing_hit_rate_penalty=-0.75,
    ),
    WeightConfig(
        key="sharp",
        name="Sharp",
        description="Confidence has more say, aggressive swings.",
        pattern=1.0,
        hit_rate=5.5,
        confidence=0.35,
        hit_rate_default=0.6,
        missing_hit_rate_penalty=-0.6,
    ),
)


def normalize_preset_key(value: str) -> str:
    raw = value.strip().lower().replace("-", "_")
    if not raw:
        raise UnknownPresetError("preset key is required")
    compact = raw.replace("_", "")
    return PRESET_ALIASES.get(compact, PRESET_ALIASES.get(raw, raw))


def _registry() -> dict[str, WeightConfig]:
    out: dict[str, WeightConfig] = {}
    for preset in _PRESETS:
        if preset.key in out:
            raise ValueError(f"duplicate preset key: {preset.key}")
        out[preset.key] = preset
    return out


def list_presets() -> list[WeightConfig]:
    return sorted(_registry().values(), key=lambda preset: preset.key)


def resolve_preset(value: str | WeightConfig) -> WeightConfig:
    """Return the preset for a key; unknown keys are fatal."""
    if isinstance(value, WeightConfig):
        return value
    key = normalize_preset_key(value)
    preset = _registry().get(key)
    if preset is None:
        known = ", ".join(sorted(_registry()))
        raise UnknownPresetError(f"unknown weight preset: {value} (known: {known})")
    return preset
