import logging

from dndmap.engine.animation import AnimationKind, AnimationOptions
from dndmap.engine.config import AnimationConfig, ValidationConfig
from dndmap.engine.easing import Easing
from dndmap.engine.models import CreateTokenData, HitPoints, Position, TokenCategory, TokenId
from dndmap.engine.registry import TokenRegistry
from dndmap.engine.scheduler import AnimationScheduler
from dndmap.engine.tokens import Alignment, SortKey, SortOrder, build_token, update_token


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _registry() -> tuple[TokenRegistry, FakeClock]:
    clock = FakeClock()
    return TokenRegistry(scheduler=AnimationScheduler(config=AnimationConfig(), clock=clock)), clock


def _create(registry: TokenRegistry, name: str = "Fighter", x: float = 0, y: float = 0, **extra):
    result = registry.create(CreateTokenData(name=name, position=Position(x=x, y=y), **extra))
    assert result.committed is True
    return result.token


def test_create_inserts_valid_token_and_marks_visible() -> None:
    registry, _ = _registry()

    result = registry.create(CreateTokenData(name="Fighter", position=Position(x=5, y=5)))

    assert result.committed is True
    assert result.validation.errors == []
    assert registry.get(result.token.id) == result.token
    assert result.token.id in registry.visible_ids
    assert len(registry) == 1


def test_create_rejects_invalid_token() -> None:
    registry, _ = _registry()

    result = registry.create(CreateTokenData(name="", position=Position(x=0, y=0)))

    assert result.committed is False
    assert "Token name cannot be empty" in result.validation.errors
    assert len(registry) == 0


def test_update_with_invalid_opacity_is_not_committed() -> None:
    registry, _ = _registry()
    token = _create(registry)

    result = registry.update(token.id, {"opacity": 1.5})

    assert result is not None
    assert result.committed is False
    assert result.validation.is_valid is False
    assert "Token opacity must be between 0 and 1" in result.validation.errors
    assert registry.get(token.id) == token


def test_update_commits_and_refreshes_timestamp() -> None:
    registry, _ = _registry()
    token = _create(registry)

    result = registry.update(token.id, {"name": "Paladin"})

    assert result is not None and result.committed is True
    assert registry.get(token.id).name == "Paladin"
    assert registry.get(token.id).last_modified >= token.last_modified


def test_unknown_ids_return_none() -> None:
    registry, _ = _registry()
    missing = TokenId("missing")

    assert registry.update(missing, {"name": "x"}) is None
    assert registry.apply_conditions(missing, ["prone"]) is None
    assert registry.validate(missing) is None
    assert registry.animate_move(missing, Position(x=1, y=1)) is None
    assert registry.delete(missing) is False


def test_delete_clears_selection_pointers_and_animations() -> None:
    registry, _ = _registry()
    token = _create(registry)
    registry.select(token.id)
    registry.set_hovered(token.id)
    registry.set_dragged(token.id)
    cancelled: list[str] = []
    registry.animate_move(token.id, Position(x=10, y=10), AnimationOptions(on_cancel=lambda: cancelled.append("x")))

    assert registry.delete(token.id) is True

    assert registry.get(token.id) is None
    assert registry.selected_ids == set()
    assert token.id not in registry.visible_ids
    assert registry.hovered_id is None
    assert registry.dragged_id is None
    assert cancelled == ["x"]
    assert registry.is_animating(token.id) is False


def test_delete_many_counts_removed_tokens() -> None:
    registry, _ = _registry()
    first = _create(registry, "A")
    second = _create(registry, "B")

    assert registry.delete_many([first.id, second.id, TokenId("missing")]) == 2
    assert len(registry) == 0


def test_selection_operations() -> None:
    registry, _ = _registry()
    first = _create(registry, "A")
    second = _create(registry, "B")

    registry.select(first.id)
    registry.select(second.id, extend=True)
    assert registry.selected_ids == {first.id, second.id}

    registry.select(second.id)
    assert registry.selected_ids == {second.id}

    registry.toggle_selection(second.id)
    registry.toggle_selection(TokenId("missing"))
    assert registry.selected_ids == set()

    registry.select_many([first.id, TokenId("missing")])
    assert registry.selected_tokens() == [first]

    registry.select_all()
    assert len(registry.selected_tokens()) == 2

    registry.clear_selection()
    assert registry.selected_tokens() == []


def test_duplicate_selected_inserts_and_selects_copies() -> None:
    registry, _ = _registry()
    original = _create(registry, "Wolf", x=10, y=20)
    registry.select(original.id)

    (copy,) = registry.duplicate_selected()

    assert copy.name == "Wolf (Copy)"
    assert copy.position == Position(x=60, y=70)
    assert registry.selected_ids == {copy.id}
    assert registry.get(original.id) == original
    assert len(registry) == 2


def test_copy_and_paste_anchor_first_token_on_position() -> None:
    registry, _ = _registry()
    first = _create(registry, "A", x=10, y=10)
    second = _create(registry, "B", x=30, y=40)
    registry.select_many([first.id, second.id])
    registry.copy_selected()

    pasted = registry.paste(Position(x=100, y=100))

    assert [token.position for token in pasted] == [Position(x=100, y=100), Position(x=120, y=130)]
    assert registry.selected_ids == {token.id for token in pasted}
    assert len(registry) == 4


def test_align_selected_commits_positions() -> None:
    registry, _ = _registry()
    tokens = [_create(registry, name, x=x) for name, x in (("A", 10), ("B", 50), ("C", 90))]
    registry.select_all()

    registry.align_selected(Alignment.CENTER)

    assert [registry.get(token.id).position.x for token in tokens] == [50, 50, 50]


def test_filtered_tokens_use_registry_filters_and_sort() -> None:
    registry, _ = _registry()
    _create(registry, "Zed", category=TokenCategory.ENEMY)
    _create(registry, "amy", category=TokenCategory.PLAYER, is_player=True)
    _create(registry, "Bob", category=TokenCategory.ENEMY)

    registry.set_filters(category=TokenCategory.ENEMY)
    registry.sort_by = SortKey.NAME
    registry.sort_order = SortOrder.DESC

    assert [token.name for token in registry.filtered_tokens()] == ["Zed", "Bob"]


def test_move_selected_and_snap_to_grid() -> None:
    registry, _ = _registry()
    token = _create(registry, x=3, y=4)
    registry.select(token.id)

    registry.move_selected(Position(x=20, y=20))
    assert registry.get(token.id).position == Position(x=23, y=24)

    registry.snap_to_grid(token.id, 25)
    assert registry.get(token.id).position == Position(x=25, y=25)

    registry.move(token.id, Position(x=1, y=2))
    assert registry.get(token.id).position == Position(x=1, y=2)


def test_apply_conditions_commits_and_flashes() -> None:
    registry, _ = _registry()
    token = _create(registry, conditions=["prone"])

    result = registry.apply_conditions(token.id, ["unconscious"], source="sleep")

    assert result is not None
    assert result.replaced == ["prone"]
    assert registry.get(token.id).condition_names == ["unconscious"]
    flashes = registry.scheduler.animations_for_token(token.id)
    assert [animation.kind for animation in flashes] == [AnimationKind.CONDITION_FLASH]
    assert flashes[0].effect.is_adding is True


def test_apply_conditions_without_animation() -> None:
    registry, _ = _registry()
    token = _create(registry)

    registry.apply_conditions(token.id, ["poisoned"], animate=False)

    assert registry.get(token.id).condition_names == ["poisoned"]
    assert registry.scheduler.animations_for_token(token.id) == []


def test_remove_conditions_commits_and_flashes() -> None:
    registry, _ = _registry()
    token = _create(registry, conditions=["prone", "poisoned"])

    result = registry.remove_conditions(token.id, ["prone"])

    assert result is not None and result.removed == ["prone"]
    assert registry.get(token.id).condition_names == ["poisoned"]
    (flash,) = registry.scheduler.animations_for_token(token.id)
    assert flash.effect.is_adding is False
    assert flash.effect.flash_color == "#FF4444"


def test_condition_flash_is_skipped_when_update_is_rejected() -> None:
    registry, _ = _registry()
    token = _create(registry, conditions=["bleeding", "prone"])
    registry.validation_config = ValidationConfig(allow_custom_conditions=False)

    applied = registry.apply_conditions(token.id, ["poisoned"])
    removed = registry.remove_conditions(token.id, ["prone"])

    assert applied is not None and applied.applied == ["poisoned"]
    assert removed is not None and removed.removed == ["prone"]
    assert registry.get(token.id).condition_names == ["bleeding", "prone"]
    assert registry.scheduler.animations_for_token(token.id) == []


def test_animate_move_commits_position_after_callers_on_complete() -> None:
    registry, clock = _registry()
    token = _create(registry)
    seen: list[Position] = []

    registry.animate_move(
        token.id,
        Position(x=100, y=0),
        AnimationOptions(duration=100, easing=Easing.LINEAR, on_complete=lambda: seen.append(registry.get(token.id).position)),
    )
    assert registry.is_animating(token.id) is True

    clock.now = 100
    registry.scheduler.tick()

    assert seen == [Position(x=0, y=0)]
    assert registry.get(token.id).position == Position(x=100, y=0)
    assert registry.is_animating(token.id) is False


def test_animate_teleport_commits_destination() -> None:
    registry, clock = _registry()
    token = _create(registry)

    registry.animate_teleport(token.id, Position(x=40, y=40))
    clock.now = 300
    registry.scheduler.tick()

    assert registry.get(token.id).position == Position(x=40, y=40)


def test_apply_damage_spends_temporary_hit_points_first() -> None:
    registry, _ = _registry()
    token = _create(registry, hit_points=HitPoints(current=10, maximum=10, temporary=5))

    result = registry.apply_damage(token.id, 8, "fire")

    assert result is not None and result.committed is True
    assert registry.get(token.id).hit_points == HitPoints(current=7, maximum=10, temporary=0)
    (text,) = registry.scheduler.animations_for_token(token.id)
    assert text.kind is AnimationKind.DAMAGE_TEXT

    registry.apply_damage(token.id, 50)
    assert registry.get(token.id).hit_points.current == 0


def test_apply_healing_caps_at_maximum() -> None:
    registry, _ = _registry()
    token = _create(registry, hit_points=HitPoints(current=3, maximum=10))

    registry.apply_healing(token.id, 20)

    assert registry.get(token.id).hit_points.current == 10
    (text,) = registry.scheduler.animations_for_token(token.id)
    assert text.kind is AnimationKind.HEAL_TEXT


def test_damage_without_hit_points_is_ignored() -> None:
    registry, _ = _registry()
    token = _create(registry)

    assert registry.apply_damage(token.id, 5) is None


def test_import_skips_invalid_tokens(caplog) -> None:
    registry, _ = _registry()
    good = build_token(CreateTokenData(name="Good", position=Position(x=0, y=0)))
    bad = update_token(good, {"opacity": 3.0, "name": "Bad"}).model_copy(update={"id": TokenId("bad")})

    with caplog.at_level(logging.WARNING):
        imported = registry.import_tokens([good, bad])

    assert imported == [good]
    assert registry.export_tokens() == [good]
    assert registry.export_tokens([TokenId("bad"), good.id]) == [good]
    assert "Skipping invalid token 'Bad'" in caplog.text


def test_validate_all_and_stats(caplog) -> None:
    registry, _ = _registry()
    hero = _create(registry, "Hero", category=TokenCategory.PLAYER, is_player=True)
    _create(registry, "Guard", speed=17)
    registry.select(hero.id)
    registry.animate_move(hero.id, Position(x=5, y=5))

    with caplog.at_level(logging.INFO):
        summary = registry.validate_all()
    stats = registry.stats()

    assert summary.total_tokens == 2
    assert summary.tokens_with_warnings == 1
    assert "Token validation summary" in caplog.text
    assert stats.total == 2
    assert stats.players == 1
    assert stats.npcs == 1
    assert stats.by_size == {"medium": 2}
    assert stats.by_category == {"player": 1, "npc": 1}
    assert stats.animating == 1
    assert stats.selected == 1
    assert stats.visible == 2


def test_add_prebuilt_token_and_track_drag_state() -> None:
    registry, _ = _registry()
    token = build_token(CreateTokenData(name="Mimic", position=Position(x=0, y=0)))

    result = registry.add(token)
    registry.set_dragged(token.id)
    registry.set_drag_offset(Position(x=4, y=-2))

    assert result.committed is True
    assert token.id in registry
    assert registry.dragged_id == token.id
    assert registry.drag_offset == Position(x=4, y=-2)

    registry.set_dragged(None)
    assert registry.dragged_id is None
