"""Cooperative, tick-driven scheduler for token animations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import StrEnum

from dndmap.engine.animation import (
    Animation,
    AnimationEffect,
    AnimationFrame,
    AnimationKind,
    AnimationOptions,
    AnimationStatus,
    ConditionFlash,
    DamageText,
    Fade,
    HealText,
    Movement,
    Rotation,
    Scale,
    Teleport,
    interpolate,
)
from dndmap.engine.config import AnimationConfig
from dndmap.engine.easing import Easing, apply_easing
from dndmap.engine.models import AnimationHandle, Position, Token, TokenId, new_animation_handle

logger = logging.getLogger(__name__)

DAMAGE_TYPE_COLORS: dict[str, str] = {
    "fire": "#EF4444",
    "cold": "#3B82F6",
    "lightning": "#EAB308",
    "acid": "#10B981",
    "poison": "#8B5CF6",
    "necrotic": "#6B7280",
    "radiant": "#F59E0B",
    "psychic": "#EC4899",
    "force": "#A855F7",
    "thunder": "#F97316",
}
DEFAULT_DAMAGE_COLOR = "#DC2626"
HEAL_COLOR = "#22C55E"
CONDITION_ADDED_COLOR = "#FFD700"
CONDITION_REMOVED_COLOR = "#FF4444"
DEFAULT_STAGGER_MS = 100.0


@dataclass(frozen=True)
class KindDefaults:
    duration: float | None
    easing: Easing | None
    priority: int


# ``None`` falls back to the scheduler's configured duration or easing.
KIND_DEFAULTS: dict[AnimationKind, KindDefaults] = {
    AnimationKind.MOVEMENT: KindDefaults(None, None, 1),
    AnimationKind.TELEPORT: KindDefaults(300, Easing.EASE_IN_OUT, 2),
    AnimationKind.ROTATION: KindDefaults(None, None, 1),
    AnimationKind.SCALE: KindDefaults(None, None, 1),
    AnimationKind.FADE: KindDefaults(None, None, 1),
    AnimationKind.CONDITION_FLASH: KindDefaults(800, Easing.BOUNCE, 3),
    AnimationKind.DAMAGE_TEXT: KindDefaults(1000, Easing.EASE_OUT, 4),
    AnimationKind.HEAL_TEXT: KindDefaults(1200, Easing.EASE_OUT, 4),
}


class BatchMode(StrEnum):
    PARALLEL = "parallel"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class AnimationMetrics:
    active: int
    running: int
    pending: int
    paused: int
    completed: int
    cancelled: int
    dropped: int


def damage_color(damage_type: str | None) -> str:
    if damage_type is None:
        return DEFAULT_DAMAGE_COLOR
    return DAMAGE_TYPE_COLORS.get(damage_type.lower(), DEFAULT_DAMAGE_COLOR)


class AnimationScheduler:
    """Owns in-flight animations and advances them once per ``tick``.

    The scheduler never spawns threads. A delayed animation waits as
    ``pending`` until a tick at or after ``now + delay`` starts it; cancelling
    it first means it never starts. Failures are never raised: an animation
    dropped at the concurrency cap simply never fires a callback.

    Time comes from one source. With a ``clock`` every stamp reads it; without
    one the scheduler runs on frame time, the latest ``now`` given to ``tick``,
    so work scheduled between frames starts at the last frame.
    """

    def __init__(self, config: AnimationConfig | None = None, clock: Callable[[], float] | None = None) -> None:
        self.config = config if config is not None else AnimationConfig()
        self._clock = clock
        self._frame_time = 0.0
        self._animations: dict[AnimationHandle, Animation] = {}
        self._due_at: dict[AnimationHandle, float] = {}
        self._paused_at: dict[AnimationHandle, float] = {}
        self._completed = 0
        self._cancelled = 0
        self._dropped = 0

    @property
    def running_count(self) -> int:
        return sum(1 for animation in self._animations.values() if animation.status is AnimationStatus.RUNNING)

    def build(self, token_id: TokenId, effect: AnimationEffect, options: AnimationOptions | None = None) -> Animation:
        """Create an animation record using per-kind defaults for unset options."""
        opts = options if options is not None else AnimationOptions()
        defaults = KIND_DEFAULTS[effect.kind]
        duration = opts.duration
        if duration is None:
            duration = defaults.duration if defaults.duration is not None else self.config.default_duration
        easing = opts.easing
        if easing is None:
            easing = defaults.easing if defaults.easing is not None else self.config.default_easing
        return Animation(
            id=new_animation_handle(),
            token_id=token_id,
            effect=effect,
            duration=duration,
            easing=easing,
            delay=opts.delay if opts.delay is not None else 0.0,
            priority=opts.priority if opts.priority is not None else defaults.priority,
            on_start=opts.on_start,
            on_update=opts.on_update,
            on_complete=opts.on_complete,
            on_cancel=opts.on_cancel,
        )

    def schedule(self, animation: Animation, now: float | None = None) -> AnimationHandle:
        if not self.config.enabled:
            return animation.id

        if len(self._animations) >= self.config.max_concurrent_animations:
            self._dropped += 1
            logger.warning(
                f"Maximum concurrent animations reached ({self.config.max_concurrent_animations}), "
                f"dropping {animation.kind} animation for token {animation.token_id}"
            )
            return animation.id

        animation.status = AnimationStatus.PENDING
        self._animations[animation.id] = animation
        current = self._time(now)
        if animation.delay <= 0:
            self._start(animation, current)
        else:
            self._due_at[animation.id] = current + animation.delay
        return animation.id

    def schedule_batch(
        self,
        animations: Sequence[Animation],
        mode: BatchMode | str = BatchMode.PARALLEL,
        stagger: float = DEFAULT_STAGGER_MS,
        on_all_complete: Callable[[], None] | None = None,
    ) -> list[AnimationHandle]:
        if not animations:
            return []

        batch_mode = BatchMode(mode)
        if batch_mode is BatchMode.SEQUENCE:
            items = [replace(animation, delay=animation.delay + index * stagger) for index, animation in enumerate(animations)]
            if on_all_complete is not None:
                items[-1] = replace(items[-1], on_complete=_chain(items[-1].on_complete, on_all_complete))
            return [self.schedule(item) for item in items]

        items = list(animations)
        if on_all_complete is not None:
            remaining = [len(items)]

            def _count_down() -> None:
                remaining[0] -= 1
                if remaining[0] == 0:
                    on_all_complete()

            items = [replace(item, on_complete=_chain(item.on_complete, _count_down)) for item in items]

        handles = [self.schedule(item) for item in items]
        if on_all_complete is not None:
            # Dropped animations never complete, so only wait on accepted ones.
            remaining[0] = sum(1 for handle in handles if handle in self._animations)
        return handles

    def tick(self, now: float | None = None) -> list[AnimationFrame]:
        """Advance every running animation and return one frame per animation."""
        current = self._time(now)
        self._frame_time = current

        for handle, due_at in list(self._due_at.items()):
            animation = self._animations.get(handle)
            if animation is None or animation.status is not AnimationStatus.PENDING:
                self._due_at.pop(handle, None)
                continue
            if current >= due_at:
                del self._due_at[handle]
                self._start(animation, current)

        frames: list[AnimationFrame] = []
        finished: list[Animation] = []
        for animation in list(self._animations.values()):
            if animation.status is not AnimationStatus.RUNNING or animation.start_time is None:
                continue

            raw_progress = self._raw_progress(animation, current)
            progress = apply_easing(raw_progress, animation.easing)
            if animation.on_update is not None:
                animation.on_update(progress)
            if animation.status is not AnimationStatus.RUNNING:
                # on_update cancelled or paused it.
                continue

            frames.append(
                AnimationFrame(
                    handle=animation.id,
                    token_id=animation.token_id,
                    kind=animation.kind,
                    progress=progress,
                    sample=interpolate(animation.effect, progress),
                )
            )
            if raw_progress >= 1:
                finished.append(animation)

        for animation in finished:
            self._complete(animation)
        return frames

    def cancel(self, handle: AnimationHandle) -> None:
        animation = self._animations.pop(handle, None)
        if animation is None:
            return
        self._due_at.pop(handle, None)
        self._paused_at.pop(handle, None)
        animation.status = AnimationStatus.CANCELLED
        self._cancelled += 1
        logger.debug(f"Cancelled {animation.kind} animation {handle} for token {animation.token_id}")
        if animation.on_cancel is not None:
            animation.on_cancel()

    def cancel_all_for_token(self, token_id: TokenId) -> None:
        for handle in [handle for handle, animation in self._animations.items() if animation.token_id == token_id]:
            self.cancel(handle)

    def cancel_all(self) -> None:
        for handle in list(self._animations):
            self.cancel(handle)

    def pause(self, handle: AnimationHandle, now: float | None = None) -> None:
        animation = self._animations.get(handle)
        if animation is None or animation.status is not AnimationStatus.RUNNING:
            return
        animation.status = AnimationStatus.PAUSED
        self._paused_at[handle] = self._time(now)

    def resume(self, handle: AnimationHandle, now: float | None = None) -> None:
        animation = self._animations.get(handle)
        if animation is None or animation.status is not AnimationStatus.PAUSED:
            return
        paused_at = self._paused_at.pop(handle, None)
        if paused_at is not None and animation.start_time is not None:
            animation.start_time += self._time(now) - paused_at
        animation.status = AnimationStatus.RUNNING

    def is_animating(self, token_id: TokenId) -> bool:
        return any(
            animation.token_id == token_id and animation.status is AnimationStatus.RUNNING
            for animation in self._animations.values()
        )

    def get(self, handle: AnimationHandle) -> Animation | None:
        return self._animations.get(handle)

    def animations_for_token(self, token_id: TokenId) -> list[Animation]:
        return [animation for animation in self._animations.values() if animation.token_id == token_id]

    def metrics(self) -> AnimationMetrics:
        statuses = [animation.status for animation in self._animations.values()]
        return AnimationMetrics(
            active=len(statuses),
            running=statuses.count(AnimationStatus.RUNNING),
            pending=statuses.count(AnimationStatus.PENDING),
            paused=statuses.count(AnimationStatus.PAUSED),
            completed=self._completed,
            cancelled=self._cancelled,
            dropped=self._dropped,
        )

    def animate_movement(self, token: Token, to: Position, options: AnimationOptions | None = None) -> AnimationHandle:
        return self.schedule(self.build(token.id, Movement(start=token.position, end=to), options))

    def animate_teleport(self, token: Token, to: Position, options: AnimationOptions | None = None) -> AnimationHandle:
        return self.schedule(self.build(token.id, Teleport(start=token.position, end=to), options))

    def animate_rotation(
        self,
        token: Token,
        to_angle: float,
        clockwise: bool = True,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle:
        effect = Rotation(from_angle=token.rotation, to_angle=to_angle, clockwise=clockwise)
        return self.schedule(self.build(token.id, effect, options))

    def animate_scale(
        self,
        token: Token,
        to_scale: float,
        from_scale: float = 1.0,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle:
        return self.schedule(self.build(token.id, Scale(from_scale=from_scale, to_scale=to_scale), options))

    def animate_fade(self, token: Token, to_opacity: float, options: AnimationOptions | None = None) -> AnimationHandle:
        effect = Fade(from_opacity=token.opacity, to_opacity=to_opacity)
        return self.schedule(self.build(token.id, effect, options))

    def animate_condition(
        self,
        token: Token,
        condition: str,
        is_adding: bool,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle:
        effect = ConditionFlash(
            condition=condition,
            is_adding=is_adding,
            flash_color=CONDITION_ADDED_COLOR if is_adding else CONDITION_REMOVED_COLOR,
        )
        return self.schedule(self.build(token.id, effect, options))

    def animate_damage(
        self,
        token: Token,
        amount: int,
        damage_type: str | None = None,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle:
        effect = DamageText(
            amount=amount,
            damage_type=damage_type,
            color=damage_color(damage_type),
            font_size=min(max(amount, 12), 32),
        )
        return self.schedule(self.build(token.id, effect, options))

    def animate_heal(self, token: Token, amount: int, options: AnimationOptions | None = None) -> AnimationHandle:
        effect = HealText(amount=amount, color=HEAL_COLOR, font_size=min(max(amount, 12), 28))
        return self.schedule(self.build(token.id, effect, options))

    def _raw_progress(self, animation: Animation, now: float) -> float:
        duration = animation.duration / self.config.global_speed if self.config.global_speed > 0 else 0.0
        if duration <= 0:
            return 1.0
        if animation.start_time is None:
            return 0.0
        elapsed = max(now - animation.start_time, 0.0)
        return min(elapsed / duration, 1.0)

    def _time(self, now: float | None) -> float:
        if now is not None:
            return now
        if self._clock is not None:
            return self._clock()
        return self._frame_time

    def _start(self, animation: Animation, now: float) -> None:
        animation.status = AnimationStatus.RUNNING
        animation.start_time = now
        logger.debug(f"Started {animation.kind} animation {animation.id} for token {animation.token_id}")
        if animation.on_start is not None:
            animation.on_start()

    def _complete(self, animation: Animation) -> None:
        if self._animations.get(animation.id) is not animation:
            return
        del self._animations[animation.id]
        animation.status = AnimationStatus.COMPLETED
        self._completed += 1
        logger.debug(f"Completed {animation.kind} animation {animation.id} for token {animation.token_id}")
        if animation.on_complete is not None:
            animation.on_complete()


def _chain(first: Callable[[], None] | None, second: Callable[[], None]) -> Callable[[], None]:
    def _run() -> None:
        if first is not None:
            first()
        second()

    return _run
