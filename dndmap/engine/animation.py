"""Animation records, the per-kind effect union and frame interpolation."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, assert_never

from dndmap.engine.easing import Easing
from dndmap.engine.models import AnimationHandle, Position, TokenId


class AnimationKind(StrEnum):
    MOVEMENT = "movement"
    TELEPORT = "teleport"
    ROTATION = "rotation"
    SCALE = "scale"
    FADE = "fade"
    CONDITION_FLASH = "condition-flash"
    DAMAGE_TEXT = "damage-text"
    HEAL_TEXT = "heal-text"


class AnimationStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Movement:
    kind: ClassVar[AnimationKind] = AnimationKind.MOVEMENT
    start: Position
    end: Position


@dataclass(frozen=True)
class Teleport:
    kind: ClassVar[AnimationKind] = AnimationKind.TELEPORT
    start: Position
    end: Position
    fade_out: bool = True
    fade_in: bool = True


@dataclass(frozen=True)
class Rotation:
    kind: ClassVar[AnimationKind] = AnimationKind.ROTATION
    from_angle: float
    to_angle: float
    clockwise: bool = True


@dataclass(frozen=True)
class Scale:
    kind: ClassVar[AnimationKind] = AnimationKind.SCALE
    from_scale: float
    to_scale: float


@dataclass(frozen=True)
class Fade:
    kind: ClassVar[AnimationKind] = AnimationKind.FADE
    from_opacity: float
    to_opacity: float


@dataclass(frozen=True)
class ConditionFlash:
    kind: ClassVar[AnimationKind] = AnimationKind.CONDITION_FLASH
    condition: str
    is_adding: bool
    flash_color: str
    pulse: bool = True


@dataclass(frozen=True)
class DamageText:
    kind: ClassVar[AnimationKind] = AnimationKind.DAMAGE_TEXT
    amount: int
    damage_type: str | None
    color: str
    font_size: float
    rise: float = -50.0


@dataclass(frozen=True)
class HealText:
    kind: ClassVar[AnimationKind] = AnimationKind.HEAL_TEXT
    amount: int
    color: str
    font_size: float
    sparkles: bool = True
    rise: float = -50.0


AnimationEffect = Movement | Teleport | Rotation | Scale | Fade | ConditionFlash | DamageText | HealText


@dataclass(frozen=True)
class AnimationOptions:
    """Per-call overrides; ``None`` means use the kind's default."""

    duration: float | None = None
    easing: Easing | None = None
    delay: float | None = None
    priority: int | None = None
    on_start: Callable[[], None] | None = None
    on_update: Callable[[float], None] | None = None
    on_complete: Callable[[], None] | None = None
    on_cancel: Callable[[], None] | None = None


@dataclass(eq=False)
class Animation:
    id: AnimationHandle
    token_id: TokenId
    effect: AnimationEffect
    duration: float
    easing: Easing = Easing.EASE_OUT
    delay: float = 0.0
    priority: int = 1
    status: AnimationStatus = AnimationStatus.PENDING
    start_time: float | None = None
    on_start: Callable[[], None] | None = None
    on_update: Callable[[float], None] | None = None
    on_complete: Callable[[], None] | None = None
    on_cancel: Callable[[], None] | None = None

    @property
    def kind(self) -> AnimationKind:
        return self.effect.kind


@dataclass(frozen=True)
class FrameSample:
    """Display state for one frame; fields a kind does not drive stay ``None``."""

    position: Position | None = None
    opacity: float | None = None
    rotation: float | None = None
    scale: float | None = None
    offset: Position | None = None
    intensity: float | None = None
    color: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class AnimationFrame:
    handle: AnimationHandle
    token_id: TokenId
    kind: AnimationKind
    progress: float
    sample: FrameSample


def _lerp(start: float, end: float, progress: float) -> float:
    return start + (end - start) * progress


def _lerp_position(start: Position, end: Position, progress: float) -> Position:
    return Position(x=_lerp(start.x, end.x, progress), y=_lerp(start.y, end.y, progress))


def _pulse(progress: float, cycles: float) -> float:
    return math.sin(progress * math.pi * cycles) * 0.5 + 0.5


def _rotation_delta(effect: Rotation) -> float:
    delta = effect.to_angle - effect.from_angle
    if effect.clockwise and delta < 0:
        delta += 360
    elif not effect.clockwise and delta > 0:
        delta -= 360
    return delta


def interpolate(effect: AnimationEffect, progress: float) -> FrameSample:
    """Return the display state of ``effect`` at eased ``progress``."""
    if isinstance(effect, Movement):
        return FrameSample(position=_lerp_position(effect.start, effect.end, progress))
    if isinstance(effect, Teleport):
        if progress < 0.5:
            opacity = 1 - progress * 2 if effect.fade_out else 1.0
            return FrameSample(position=effect.start, opacity=opacity)
        opacity = (progress - 0.5) * 2 if effect.fade_in else 1.0
        return FrameSample(position=effect.end, opacity=opacity)
    if isinstance(effect, Rotation):
        return FrameSample(rotation=effect.from_angle + _rotation_delta(effect) * progress)
    if isinstance(effect, Scale):
        return FrameSample(scale=_lerp(effect.from_scale, effect.to_scale, progress))
    if isinstance(effect, Fade):
        return FrameSample(opacity=_lerp(effect.from_opacity, effect.to_opacity, progress))
    if isinstance(effect, ConditionFlash):
        intensity = _pulse(progress, 4) if effect.pulse else 1 - progress
        return FrameSample(intensity=intensity, color=effect.flash_color, text=effect.condition)
    if isinstance(effect, DamageText):
        return FrameSample(
            offset=Position(x=0, y=effect.rise * progress),
            opacity=1 - progress,
            color=effect.color,
            text=f"-{effect.amount}",
        )
    if isinstance(effect, HealText):
        return FrameSample(
            offset=Position(x=0, y=effect.rise * progress),
            opacity=1 - progress,
            intensity=_pulse(progress, 6) if effect.sparkles else 0.0,
            color=effect.color,
            text=f"+{effect.amount}",
        )
    assert_never(effect)
