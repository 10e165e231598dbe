"""Structural and D&D 5e compliance checks for tokens."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from dndmap.engine.conditions import conditions_conflict, is_known_condition
from dndmap.engine.config import ValidationConfig
from dndmap.engine.models import HitPoints, Token, TokenId, TokenSize, is_valid_size

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

MAX_NAME_LENGTH = 100
MAX_CONDITIONS = 8
COMMON_SPEEDS = frozenset({0, 25, 30, 40, 50, 60})

EXPECTED_SPEED_RANGES: dict[str, tuple[int, int]] = {
    TokenSize.TINY: (10, 40),
    TokenSize.SMALL: (15, 40),
    TokenSize.MEDIUM: (20, 50),
    TokenSize.LARGE: (25, 60),
    TokenSize.HUGE: (20, 80),
    TokenSize.GARGANTUAN: (15, 100),
}

EXPECTED_HP_RANGES: dict[str, tuple[int, int]] = {
    TokenSize.TINY: (1, 20),
    TokenSize.SMALL: (3, 50),
    TokenSize.MEDIUM: (5, 100),
    TokenSize.LARGE: (20, 200),
    TokenSize.HUGE: (50, 400),
    TokenSize.GARGANTUAN: (100, 600),
}


@dataclass(frozen=True)
class TokenValidationResult:
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    dnd_compliant: bool


@dataclass(frozen=True)
class ValidationSummary:
    total_tokens: int
    valid_tokens: int
    tokens_with_errors: int
    tokens_with_warnings: int
    dnd_compliant_tokens: int
    common_issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class NameCheck:
    is_unique: bool
    suggestions: list[str]


def is_hex_color(value: str | None) -> bool:
    return isinstance(value, str) and HEX_COLOR.match(value) is not None


def validate_token(token: Token, config: ValidationConfig | None = None) -> TokenValidationResult:
    """Validate ``token``.

    Structural problems land in ``errors`` and make the token invalid.
    Domain findings are advisory ``warnings`` unless they break a data model
    invariant (hit point bounds, armor class hard bounds, negative speed) or
    ``strict_size_validation`` promotes an unknown size.
    ``dnd_compliant`` only reflects warnings raised by the domain layer.
    """
    active_config = config if config is not None else ValidationConfig()
    errors: list[str] = []
    warnings: list[str] = []
    _check_structure(token, errors, warnings)

    domain_warnings: list[str] = []
    if active_config.enable_dnd_validation:
        _check_domain(token, active_config, errors, domain_warnings)
    warnings.extend(domain_warnings)

    return TokenValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
        dnd_compliant=len(domain_warnings) == 0 if active_config.enable_dnd_validation else True,
    )


def _check_structure(token: Token, errors: list[str], warnings: list[str]) -> None:
    if not token.name or not token.name.strip():
        errors.append("Token name cannot be empty")
    elif len(token.name) > MAX_NAME_LENGTH:
        warnings.append(f"Token name is very long (>{MAX_NAME_LENGTH} characters)")

    if not is_hex_color(token.color):
        errors.append("Token color must be a valid hex color (e.g., #FF0000)")
    if token.border_color is not None and not is_hex_color(token.border_color):
        errors.append("Border color must be a valid hex color")

    if token.opacity < 0 or token.opacity > 1:
        errors.append("Token opacity must be between 0 and 1")
    if token.border_width is not None and token.border_width < 0:
        errors.append("Border width cannot be negative")
    if token.layer < 0:
        errors.append("Layer must be non-negative")
    if token.rotation < -360 or token.rotation > 360:
        warnings.append("Rotation is outside typical range (-360 to 360 degrees)")

    if token.label is not None:
        if token.label.font_size <= 0:
            errors.append("Label font size must be positive")
        if token.label.offset < 0:
            errors.append("Label offset cannot be negative")
        if not is_hex_color(token.label.color):
            errors.append("Label color must be a valid hex color")


def _check_domain(token: Token, config: ValidationConfig, errors: list[str], warnings: list[str]) -> None:
    if not is_valid_size(token.size):
        message = f"Invalid token size: {token.size}"
        if config.strict_size_validation:
            errors.append(message)
        else:
            warnings.append(message)

    if config.validate_hit_points and token.hit_points is not None:
        _check_hit_points(token.hit_points, config, errors, warnings)
    if config.validate_armor_class and token.armor_class is not None:
        _check_armor_class(token.armor_class, errors, warnings)
    if config.validate_speed and token.speed is not None:
        _check_speed(token.speed, config, errors, warnings)
    if token.initiative is not None and (token.initiative < -10 or token.initiative > 50):
        warnings.append("Initiative outside typical range (-10 to +50)")
    if token.conditions:
        _check_conditions(token.condition_names, config, errors, warnings)
    _check_size_expectations(token, config, warnings)


def _check_hit_points(hit_points: HitPoints, config: ValidationConfig, errors: list[str], warnings: list[str]) -> None:
    if hit_points.maximum <= 0:
        errors.append("Maximum hit points must be positive")
    if hit_points.current < 0:
        errors.append("Current hit points cannot be negative")
    if hit_points.temporary < 0:
        errors.append("Temporary hit points cannot be negative")
    if hit_points.current > hit_points.maximum + hit_points.temporary:
        errors.append("Current HP cannot exceed maximum + temporary HP")

    if config.enforce_official_rules:
        if hit_points.maximum > 400:
            warnings.append("Very high hit points for D&D 5e (>400)")
        if hit_points.temporary > 50:
            warnings.append("Very high temporary hit points (>50)")


def _check_armor_class(armor_class: int, errors: list[str], warnings: list[str]) -> None:
    if armor_class < 1:
        errors.append("Armor class must be at least 1")
    elif armor_class > 30:
        errors.append("Armor class cannot exceed 30")
    elif armor_class < 8 or armor_class > 25:
        warnings.append("Unusual armor class for D&D 5e (typical range: 8-25)")


def _check_speed(speed: int, config: ValidationConfig, errors: list[str], warnings: list[str]) -> None:
    if speed < 0:
        errors.append("Speed cannot be negative")
        return
    if speed > 200:
        warnings.append("Very high speed for D&D 5e (>200 feet)")
    if speed > 0 and speed % 5 != 0:
        warnings.append("D&D 5e speeds are typically multiples of 5 feet")
    if config.enforce_official_rules and speed > 0 and speed not in COMMON_SPEEDS:
        warnings.append("Uncommon speed for D&D 5e (common: 25, 30, 40, 50, 60 feet)")


def _check_conditions(
    conditions: Sequence[str],
    config: ValidationConfig,
    errors: list[str],
    warnings: list[str],
) -> None:
    recognized: list[str] = []
    for condition in conditions:
        if is_known_condition(condition):
            recognized.append(condition)
        elif config.allow_custom_conditions:
            warnings.append(f"Custom condition: {condition}")
        else:
            errors.append(f"Invalid D&D 5e condition: {condition}")

    for index, first in enumerate(recognized):
        for second in recognized[index + 1 :]:
            if conditions_conflict(first, second):
                warnings.append(f"Conflicting conditions: {first} and {second}")

    if len(set(conditions)) != len(conditions):
        warnings.append("Duplicate conditions detected")
    if len(conditions) > MAX_CONDITIONS:
        warnings.append(f"Many conditions applied (>{MAX_CONDITIONS}), consider reviewing")


def _check_size_expectations(token: Token, config: ValidationConfig, warnings: list[str]) -> None:
    speed_range = EXPECTED_SPEED_RANGES.get(token.size)
    if speed_range is None:
        return

    if config.validate_speed and token.speed:
        low, high = speed_range
        if token.speed < low:
            warnings.append(f"Slow for {token.size} creature (<{low} feet)")
        elif token.speed > high:
            warnings.append(f"Fast for {token.size} creature (>{high} feet)")

    if config.enforce_official_rules and config.validate_hit_points and token.hit_points is not None:
        low, high = EXPECTED_HP_RANGES[token.size]
        if token.hit_points.maximum < low:
            warnings.append(f"Low hit points for {token.size} creature (<{low})")
        elif token.hit_points.maximum > high:
            warnings.append(f"High hit points for {token.size} creature (>{high})")


def summarize_validation(tokens: Iterable[Token], config: ValidationConfig | None = None) -> ValidationSummary:
    """Aggregate validation results over a collection for diagnostics."""
    total = 0
    valid = 0
    with_errors = 0
    with_warnings = 0
    compliant = 0
    error_counts: Counter[str] = Counter()
    warning_counts: Counter[str] = Counter()

    for token in tokens:
        total += 1
        result = validate_token(token, config)
        if result.is_valid:
            valid += 1
        if result.errors:
            with_errors += 1
            error_counts.update(result.errors)
        if result.warnings:
            with_warnings += 1
            warning_counts.update(result.warnings)
        if result.dnd_compliant:
            compliant += 1

    common_issues = [f"{message} ({count} tokens)" for message, count in error_counts.most_common(3)]
    common_issues.extend(f"{message} ({count} tokens)" for message, count in warning_counts.most_common(3))

    return ValidationSummary(
        total_tokens=total,
        valid_tokens=valid,
        tokens_with_errors=with_errors,
        tokens_with_warnings=with_warnings,
        dnd_compliant_tokens=compliant,
        common_issues=common_issues,
    )


def check_name_uniqueness(name: str, tokens: Iterable[Token], exclude_id: TokenId | None = None) -> NameCheck:
    others = [token for token in tokens if token.id != exclude_id]
    trimmed = name.strip().lower()
    if not trimmed:
        return NameCheck(is_unique=False, suggestions=["Name cannot be empty"])

    taken = {token.name.lower() for token in others}
    if trimmed not in taken:
        return NameCheck(is_unique=True, suggestions=[])

    suggestions: list[str] = []
    for number in range(2, 11):
        suggestion = f"{name} {number}"
        if suggestion.lower() not in taken:
            suggestions.append(suggestion)
            if len(suggestions) >= 3:
                break

    return NameCheck(is_unique=False, suggestions=suggestions or [f"{name} (Copy)"])
