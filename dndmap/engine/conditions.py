"""D&D 5e condition tables: stacking, conflicts, interactions and visuals.

These are static data. Resolution logic lives in ``resolver.py``; visual
metadata is carried for the rendering layer and is never consulted when
resolving conflicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ConditionType(StrEnum):
    BLINDED = "blinded"
    CHARMED = "charmed"
    DEAFENED = "deafened"
    FRIGHTENED = "frightened"
    GRAPPLED = "grappled"
    INCAPACITATED = "incapacitated"
    INVISIBLE = "invisible"
    PARALYZED = "paralyzed"
    PETRIFIED = "petrified"
    POISONED = "poisoned"
    PRONE = "prone"
    RESTRAINED = "restrained"
    STUNNED = "stunned"
    UNCONSCIOUS = "unconscious"


class InteractionKind(StrEnum):
    BLOCKS = "blocks"
    REPLACES = "replaces"
    STACKS = "stacks"
    UPGRADES = "upgrades"
    DOWNGRADES = "downgrades"


@dataclass(frozen=True)
class ConditionRule:
    can_stack: bool
    conflicts: frozenset[ConditionType]
    automatic_removal: frozenset[ConditionType] = frozenset()


@dataclass(frozen=True)
class ConditionVisual:
    name: str
    description: str
    color: str
    icon: str
    animation: str
    priority: int
    opacity: float | None = None


@dataclass(frozen=True)
class ConditionInteraction:
    primary: ConditionType
    secondary: ConditionType
    interaction: InteractionKind
    description: str


C = ConditionType

CONDITION_VISUALS: dict[ConditionType, ConditionVisual] = {
    C.BLINDED: ConditionVisual(
        "Blinded", "Cannot see and automatically fails sight-based checks", "#000000", "eye-off", "none", 8
    ),
    C.CHARMED: ConditionVisual(
        "Charmed", "Cannot attack the charmer or target with harmful abilities", "#FF69B4", "heart", "pulse", 5
    ),
    C.DEAFENED: ConditionVisual(
        "Deafened", "Cannot hear and automatically fails hearing-based checks", "#708090", "volume-x", "none", 7
    ),
    C.FRIGHTENED: ConditionVisual(
        "Frightened",
        "Disadvantage on ability checks and attacks while source is in sight",
        "#FF4500",
        "alert-triangle",
        "blink",
        6,
    ),
    C.GRAPPLED: ConditionVisual(
        "Grappled", "Speed becomes 0 and cannot benefit from bonuses to speed", "#8B4513", "link", "none", 4
    ),
    C.INCAPACITATED: ConditionVisual(
        "Incapacitated", "Cannot take actions or reactions", "#696969", "pause", "none", 9
    ),
    C.INVISIBLE: ConditionVisual(
        "Invisible", "Impossible to see without special senses", "#D3D3D3", "eye-off", "pulse", 3, opacity=0.3
    ),
    C.PARALYZED: ConditionVisual(
        "Paralyzed", "Incapacitated and cannot move or speak", "#4169E1", "zap-off", "none", 10
    ),
    C.PETRIFIED: ConditionVisual(
        "Petrified", "Transformed into solid inanimate substance", "#808080", "hexagon", "none", 12
    ),
    C.POISONED: ConditionVisual(
        "Poisoned", "Disadvantage on attack rolls and ability checks", "#4B0082", "skull", "pulse", 5
    ),
    C.PRONE: ConditionVisual(
        "Prone", "Lying down, disadvantage on attack rolls", "#8B4513", "chevron-down", "none", 2
    ),
    C.RESTRAINED: ConditionVisual(
        "Restrained", "Speed becomes 0, disadvantage on attacks and dex saves", "#808080", "lock", "none", 8
    ),
    C.STUNNED: ConditionVisual(
        "Stunned", "Incapacitated, cannot move, and can speak falteringly", "#FFD700", "zap", "spin", 11
    ),
    C.UNCONSCIOUS: ConditionVisual(
        "Unconscious",
        "Incapacitated, cannot move or speak, unaware of surroundings",
        "#2F4F4F",
        "moon",
        "none",
        13,
    ),
}

# Every pair listed in CONDITION_INTERACTIONS is declared as a conflict on at
# least one side. petrified/stunned conflicts without an interaction record.
CONDITION_RULES: dict[ConditionType, ConditionRule] = {
    C.BLINDED: ConditionRule(can_stack=False, conflicts=frozenset()),
    C.CHARMED: ConditionRule(can_stack=False, conflicts=frozenset({C.FRIGHTENED})),
    C.DEAFENED: ConditionRule(can_stack=False, conflicts=frozenset()),
    C.FRIGHTENED: ConditionRule(can_stack=False, conflicts=frozenset({C.CHARMED})),
    C.GRAPPLED: ConditionRule(
        can_stack=False,
        conflicts=frozenset(),
        automatic_removal=frozenset({C.UNCONSCIOUS, C.INCAPACITATED}),
    ),
    C.INCAPACITATED: ConditionRule(can_stack=False, conflicts=frozenset()),
    C.INVISIBLE: ConditionRule(can_stack=False, conflicts=frozenset()),
    C.PARALYZED: ConditionRule(can_stack=False, conflicts=frozenset({C.INCAPACITATED})),
    C.PETRIFIED: ConditionRule(can_stack=False, conflicts=frozenset({C.PARALYZED, C.UNCONSCIOUS, C.STUNNED})),
    C.POISONED: ConditionRule(can_stack=False, conflicts=frozenset()),
    C.PRONE: ConditionRule(can_stack=False, conflicts=frozenset(), automatic_removal=frozenset({C.UNCONSCIOUS})),
    C.RESTRAINED: ConditionRule(
        can_stack=False,
        conflicts=frozenset(),
        automatic_removal=frozenset({C.UNCONSCIOUS, C.INCAPACITATED}),
    ),
    C.STUNNED: ConditionRule(can_stack=False, conflicts=frozenset({C.PETRIFIED, C.INCAPACITATED})),
    C.UNCONSCIOUS: ConditionRule(
        can_stack=False,
        conflicts=frozenset({C.PETRIFIED, C.PRONE, C.INCAPACITATED}),
    ),
}

CONDITION_INTERACTIONS: tuple[ConditionInteraction, ...] = (
    ConditionInteraction(
        C.UNCONSCIOUS, C.PRONE, InteractionKind.UPGRADES, "Unconscious creatures are automatically prone"
    ),
    ConditionInteraction(
        C.PARALYZED, C.INCAPACITATED, InteractionKind.UPGRADES, "Paralyzed creatures are incapacitated"
    ),
    ConditionInteraction(C.PETRIFIED, C.PARALYZED, InteractionKind.REPLACES, "Petrification replaces paralysis"),
    ConditionInteraction(
        C.PETRIFIED, C.UNCONSCIOUS, InteractionKind.REPLACES, "Petrification replaces unconsciousness"
    ),
    ConditionInteraction(
        C.STUNNED, C.INCAPACITATED, InteractionKind.UPGRADES, "Stunned creatures are incapacitated"
    ),
    ConditionInteraction(
        C.UNCONSCIOUS, C.INCAPACITATED, InteractionKind.UPGRADES, "Unconscious creatures are incapacitated"
    ),
    ConditionInteraction(
        C.CHARMED, C.FRIGHTENED, InteractionKind.BLOCKS, "Cannot be charmed and frightened by the same source"
    ),
)

CONDITION_PRIORITIES: dict[ConditionType, int] = {
    condition: visual.priority for condition, visual in CONDITION_VISUALS.items()
}


def is_known_condition(name: str) -> bool:
    return name in CONDITION_RULES


def condition_by_name(name: str) -> ConditionType | None:
    """Look up a condition by its display name, case-insensitively."""
    normalized = name.strip().lower()
    for condition, visual in CONDITION_VISUALS.items():
        if visual.name.lower() == normalized:
            return condition
    return None


def conditions_by_priority() -> list[ConditionType]:
    return sorted(CONDITION_VISUALS, key=lambda condition: CONDITION_VISUALS[condition].priority, reverse=True)


def conditions_conflict(first: str, second: str) -> bool:
    if not (is_known_condition(first) and is_known_condition(second)):
        return False
    first_rule = CONDITION_RULES[ConditionType(first)]
    second_rule = CONDITION_RULES[ConditionType(second)]
    return second in first_rule.conflicts or first in second_rule.conflicts


def find_interaction(first: str, second: str) -> ConditionInteraction | None:
    for interaction in CONDITION_INTERACTIONS:
        if (interaction.primary == first and interaction.secondary == second) or (
            interaction.primary == second and interaction.secondary == first
        ):
            return interaction
    return None
