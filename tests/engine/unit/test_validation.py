import pytest

from dndmap.engine.config import ValidationConfig
from dndmap.engine.models import CreateTokenData, HitPoints, Position, Token, TokenLabel
from dndmap.engine.tokens import build_token, update_token
from dndmap.engine.validation import check_name_uniqueness, summarize_validation, validate_token


def _token(name: str = "Knight", **updates) -> Token:
    token = build_token(CreateTokenData(name=name, position=Position(x=0, y=0)))
    return update_token(token, updates) if updates else token


@pytest.mark.parametrize("opacity", [-0.1, 1.5])
def test_opacity_outside_unit_range_is_an_error(opacity: float) -> None:
    result = validate_token(_token(opacity=opacity))

    assert result.is_valid is False
    assert "Token opacity must be between 0 and 1" in result.errors


def test_hit_points_may_equal_maximum_plus_temporary() -> None:
    result = validate_token(_token(hit_points=HitPoints(current=15, maximum=10, temporary=5)))

    assert result.is_valid is True


def test_hit_points_above_maximum_plus_temporary_is_an_error() -> None:
    result = validate_token(_token(hit_points=HitPoints(current=16, maximum=10, temporary=5)))

    assert result.is_valid is False
    assert "Current HP cannot exceed maximum + temporary HP" in result.errors


def test_structural_errors_for_name_and_color() -> None:
    result = validate_token(_token(name="  ", color="red"))

    assert result.errors == [
        "Token name cannot be empty",
        "Token color must be a valid hex color (e.g., #FF0000)",
    ]


def test_unknown_size_is_an_error_under_strict_validation() -> None:
    token = _token(size="colossal")

    strict = validate_token(token)
    lenient = validate_token(token, ValidationConfig(strict_size_validation=False))

    assert strict.errors == ["Invalid token size: colossal"]
    assert lenient.is_valid is True
    assert lenient.warnings == ["Invalid token size: colossal"]
    assert lenient.dnd_compliant is False


def test_armor_class_bounds() -> None:
    assert validate_token(_token(armor_class=0)).is_valid is False
    assert validate_token(_token(armor_class=31)).is_valid is False

    unusual = validate_token(_token(armor_class=27))

    assert unusual.is_valid is True
    assert unusual.warnings == ["Unusual armor class for D&D 5e (typical range: 8-25)"]


def test_speed_warnings_are_advisory() -> None:
    result = validate_token(_token(speed=17))

    assert result.is_valid is True
    assert result.dnd_compliant is False
    assert result.warnings == [
        "D&D 5e speeds are typically multiples of 5 feet",
        "Slow for medium creature (<20 feet)",
    ]


def test_negative_speed_is_an_error() -> None:
    assert "Speed cannot be negative" in validate_token(_token(speed=-5)).errors


def test_condition_checks() -> None:
    token = _token(conditions=["charmed", "frightened", "bleeding"])

    result = validate_token(token)

    assert result.is_valid is True
    assert result.warnings == [
        "Custom condition: bleeding",
        "Conflicting conditions: charmed and frightened",
    ]


def test_unknown_condition_is_an_error_when_custom_conditions_disallowed() -> None:
    result = validate_token(_token(conditions=["bleeding"]), ValidationConfig(allow_custom_conditions=False))

    assert result.errors == ["Invalid D&D 5e condition: bleeding"]


def test_duplicate_conditions_are_reported() -> None:
    result = validate_token(_token(conditions=["prone", "prone"]))

    assert "Duplicate conditions detected" in result.warnings


def test_domain_checks_can_be_disabled() -> None:
    result = validate_token(_token(speed=17, size="colossal"), ValidationConfig(enable_dnd_validation=False))

    assert result.is_valid is True
    assert result.warnings == []
    assert result.dnd_compliant is True


def test_official_rules_add_expected_hit_point_ranges() -> None:
    token = _token(hit_points=HitPoints(current=2, maximum=2), speed=30)

    relaxed = validate_token(token)
    official = validate_token(token, ValidationConfig(enforce_official_rules=True))

    assert relaxed.warnings == []
    assert official.warnings == ["Low hit points for medium creature (<5)"]


def test_summarize_validation_counts_tokens() -> None:
    tokens = [_token(), _token(opacity=2.0), _token(speed=17)]

    summary = summarize_validation(tokens)

    assert summary.total_tokens == 3
    assert summary.valid_tokens == 2
    assert summary.tokens_with_errors == 1
    assert summary.tokens_with_warnings == 1
    assert summary.dnd_compliant_tokens == 2
    assert summary.common_issues[0] == "Token opacity must be between 0 and 1 (1 tokens)"


def test_name_uniqueness_suggests_alternatives() -> None:
    tokens = [_token("Goblin"), _token("Goblin 2")]

    check = check_name_uniqueness("goblin", tokens)

    assert check.is_unique is False
    assert check.suggestions == ["goblin 3", "goblin 4", "goblin 5"]
    assert check_name_uniqueness("Orc", tokens).is_unique is True
    assert check_name_uniqueness("Goblin", tokens[:1], exclude_id=tokens[0].id).is_unique is True


@pytest.mark.parametrize("initiative", [-11, 51])
def test_initiative_outside_typical_range_warns(initiative: float) -> None:
    result = validate_token(_token(initiative=initiative))

    assert result.is_valid is True
    assert result.warnings == ["Initiative outside typical range (-10 to +50)"]
    assert result.dnd_compliant is False


def test_initiative_at_range_edges_is_clean() -> None:
    assert validate_token(_token(initiative=-10)).warnings == []
    assert validate_token(_token(initiative=50)).warnings == []


def test_more_than_eight_conditions_warns() -> None:
    conditions = [
        "blinded",
        "charmed",
        "deafened",
        "grappled",
        "incapacitated",
        "invisible",
        "poisoned",
        "prone",
        "restrained",
    ]

    result = validate_token(_token(conditions=conditions))

    assert result.is_valid is True
    assert "Many conditions applied (>8), consider reviewing" in result.warnings
    assert "Many conditions applied (>8), consider reviewing" not in validate_token(
        _token(conditions=conditions[:8])
    ).warnings


def test_very_high_speed_warns() -> None:
    result = validate_token(_token(speed=205))

    assert result.is_valid is True
    assert "Very high speed for D&D 5e (>200 feet)" in result.warnings
    assert "Very high speed for D&D 5e (>200 feet)" not in validate_token(_token(speed=200)).warnings


def test_negative_border_width_is_an_error() -> None:
    result = validate_token(_token(border_width=-1))

    assert result.is_valid is False
    assert result.errors == ["Border width cannot be negative"]


def test_negative_layer_is_an_error() -> None:
    result = validate_token(_token(layer=-1))

    assert result.is_valid is False
    assert result.errors == ["Layer must be non-negative"]


@pytest.mark.parametrize("font_size", [0, -4])
def test_label_font_size_must_be_positive(font_size: float) -> None:
    result = validate_token(_token(label=TokenLabel(text="Boss", font_size=font_size)))

    assert result.errors == ["Label font size must be positive"]


def test_negative_label_offset_is_an_error() -> None:
    result = validate_token(_token(label=TokenLabel(text="Boss", offset=-2)))

    assert result.errors == ["Label offset cannot be negative"]


def test_label_color_must_be_hex() -> None:
    result = validate_token(_token(label=TokenLabel(text="Boss", color="white")))

    assert result.errors == ["Label color must be a valid hex color"]


def test_structural_warnings_do_not_affect_dnd_compliance() -> None:
    result = validate_token(_token(name="K" * 101, rotation=400))

    assert result.is_valid is True
    assert result.warnings == [
        "Token name is very long (>100 characters)",
        "Rotation is outside typical range (-360 to 360 degrees)",
    ]
    assert result.dnd_compliant is True
