"""Pure condition resolution against the interaction rule tables."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from dndmap.engine.conditions import (
    CONDITION_RULES,
    ConditionType,
    InteractionKind,
    conditions_conflict,
    find_interaction,
    is_known_condition,
)
from dndmap.engine.config import ValidationConfig
from dndmap.engine.models import ConditionEffect, utc_now


@dataclass(frozen=True)
class ConditionApplicationResult:
    success: bool
    applied: list[str]
    blocked: list[str]
    replaced: list[str]
    warnings: list[str]
    conditions: tuple[ConditionEffect, ...]


@dataclass(frozen=True)
class ConditionRemovalResult:
    success: bool
    removed: list[str]
    remaining: list[ConditionType]
    warnings: list[str]
    conditions: tuple[ConditionEffect, ...]


def _can_stack(condition: str) -> bool:
    if not is_known_condition(condition):
        return False
    return CONDITION_RULES[ConditionType(condition)].can_stack


def apply_conditions(
    existing: Sequence[ConditionEffect],
    candidates: Iterable[str],
    source: str | None = None,
    config: ValidationConfig | None = None,
) -> ConditionApplicationResult:
    """Resolve ``candidates`` in order against the conditions already present.

    Conflicts are only checked against pre-existing conditions, never between
    candidates of the same call, so ``["charmed", "frightened"]`` on a clean
    token applies both. Duplicates are still skipped across the whole call.
    """
    active_config = config if config is not None else ValidationConfig()
    applied: list[str] = []
    blocked: list[str] = []
    replaced: list[str] = []
    warnings: list[str] = []
    baseline = list(existing)
    added: list[ConditionEffect] = []

    for candidate in candidates:
        if not is_known_condition(candidate):
            if not active_config.allow_custom_conditions:
                warnings.append(f"Blocked invalid condition: {candidate}")
                continue
            warnings.append(f"Applied custom condition: {candidate}")

        already_present = any(effect.type == candidate for effect in (*baseline, *added))
        if already_present and not _can_stack(candidate):
            warnings.append(f"Condition {candidate} already applied")
            continue

        skip = False
        for conflict in [effect for effect in baseline if conditions_conflict(candidate, effect.type)]:
            interaction = find_interaction(candidate, conflict.type)
            if interaction is None:
                # Declared conflict without a rule: both conditions coexist.
                continue
            if interaction.interaction is InteractionKind.BLOCKS:
                blocked.append(candidate)
                warnings.append(f"{candidate} blocked by existing {conflict.type}")
                skip = True
                break
            if interaction.interaction in (InteractionKind.REPLACES, InteractionKind.UPGRADES):
                if interaction.primary != candidate:
                    # The existing condition already includes the lesser one.
                    warnings.append(f"{candidate} already covered by existing {conflict.type}")
                    skip = True
                    break
                baseline = [effect for effect in baseline if effect is not conflict]
                replaced.append(conflict.type)

        if skip:
            continue

        added.append(
            ConditionEffect(
                type=candidate,
                source=source,
                duration=-1,
                applied_at=utc_now(),
                applied_by=source,
            )
        )
        applied.append(candidate)

    return ConditionApplicationResult(
        success=len(applied) > 0,
        applied=applied,
        blocked=blocked,
        replaced=replaced,
        warnings=warnings,
        conditions=(*baseline, *added),
    )


def remove_conditions(
    existing: Sequence[ConditionEffect],
    types_to_remove: Iterable[str],
) -> ConditionRemovalResult:
    requested = list(types_to_remove)
    removed: list[str] = []
    remaining: list[ConditionType] = []
    warnings: list[str] = []
    kept: list[ConditionEffect] = []

    for effect in existing:
        if effect.type in requested:
            if is_known_condition(effect.type):
                removed.append(effect.type)
            else:
                warnings.append(f"Removed custom condition: {effect.type}")
            continue
        kept.append(effect)
        if is_known_condition(effect.type):
            remaining.append(ConditionType(effect.type))

    present = {effect.type for effect in existing}
    for name in requested:
        if name not in present:
            warnings.append(f"Condition not found: {name}")

    return ConditionRemovalResult(
        success=len(removed) > 0,
        removed=removed,
        remaining=remaining,
        warnings=warnings,
        conditions=tuple(kept),
    )
