"""Configuration helpers for the token engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dndmap.engine.easing import Easing


@dataclass(frozen=True)
class ValidationConfig:
    enable_dnd_validation: bool = True
    enforce_official_rules: bool = False
    allow_custom_conditions: bool = True
    strict_size_validation: bool = True
    validate_hit_points: bool = True
    validate_armor_class: bool = True
    validate_speed: bool = True


@dataclass(frozen=True)
class AnimationConfig:
    enabled: bool = True
    global_speed: float = 1.0
    max_concurrent_animations: int = 50
    default_duration: float = 500.0
    default_easing: Easing = Easing.EASE_OUT


@dataclass(frozen=True)
class EngineSettings:
    animation: AnimationConfig
    validation: ValidationConfig


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> EngineSettings:
    max_concurrent_raw = os.getenv("DNDMAP_MAX_CONCURRENT_ANIMATIONS", "50")
    duration_raw = os.getenv("DNDMAP_DEFAULT_DURATION_MS", "500")
    speed_raw = os.getenv("DNDMAP_GLOBAL_SPEED", "1.0")
    return EngineSettings(
        animation=AnimationConfig(
            enabled=_env_flag("DNDMAP_ANIMATIONS_ENABLED", True),
            global_speed=float(speed_raw),
            max_concurrent_animations=int(max_concurrent_raw),
            default_duration=float(duration_raw),
            default_easing=Easing(os.getenv("DNDMAP_DEFAULT_EASING", Easing.EASE_OUT.value)),
        ),
        validation=ValidationConfig(
            enable_dnd_validation=_env_flag("DNDMAP_ENABLE_DND_VALIDATION", True),
            enforce_official_rules=_env_flag("DNDMAP_ENFORCE_OFFICIAL_RULES", False),
            allow_custom_conditions=_env_flag("DNDMAP_ALLOW_CUSTOM_CONDITIONS", True),
            strict_size_validation=_env_flag("DNDMAP_STRICT_SIZE_VALIDATION", True),
        ),
    )
