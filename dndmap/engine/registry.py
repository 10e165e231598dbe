"""In-memory token registry: the single mutation path for tokens."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from dndmap.engine.animation import AnimationOptions
from dndmap.engine.config import ValidationConfig
from dndmap.engine.models import (
    AnimationHandle,
    CreateTokenData,
    HitPoints,
    Position,
    Token,
    TokenCategory,
    TokenFilters,
    TokenId,
)
from dndmap.engine.resolver import (
    ConditionApplicationResult,
    ConditionRemovalResult,
    apply_conditions as resolve_apply,
    remove_conditions as resolve_remove,
)
from dndmap.engine.scheduler import AnimationScheduler
from dndmap.engine.tokens import (
    DEFAULT_DUPLICATE_OFFSET,
    Alignment,
    SortKey,
    SortOrder,
    align_tokens,
    build_token,
    duplicate_tokens,
    filter_tokens,
    snap_to_grid,
    sort_tokens,
    update_token,
)
from dndmap.engine.validation import (
    TokenValidationResult,
    ValidationSummary,
    summarize_validation,
    validate_token,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryResult:
    token: Token
    validation: TokenValidationResult
    committed: bool


@dataclass(frozen=True)
class RegistryStats:
    total: int
    players: int
    npcs: int
    by_size: dict[str, int]
    by_category: dict[str, int]
    animating: int
    selected: int
    visible: int


@dataclass
class TokenRegistry:
    scheduler: AnimationScheduler | None = None
    validation_config: ValidationConfig | None = None
    filters: TokenFilters = field(default_factory=TokenFilters)
    sort_by: SortKey = SortKey.NAME
    sort_order: SortOrder = SortOrder.ASC

    def __post_init__(self) -> None:
        if self.scheduler is None:
            self.scheduler = AnimationScheduler()
        if self.validation_config is None:
            self.validation_config = ValidationConfig()
        self._tokens: dict[TokenId, Token] = {}
        self.selected_ids: set[TokenId] = set()
        self.visible_ids: set[TokenId] = set()
        self.hovered_id: TokenId | None = None
        self.dragged_id: TokenId | None = None
        self.drag_offset: Position | None = None
        self._clipboard: list[Token] = []

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._tokens

    def get(self, token_id: TokenId) -> Token | None:
        return self._tokens.get(token_id)

    def tokens(self) -> list[Token]:
        return list(self._tokens.values())

    def create(self, data: CreateTokenData) -> RegistryResult:
        return self.add(build_token(data))

    def add(self, token: Token) -> RegistryResult:
        validation = validate_token(token, self.validation_config)
        if not validation.is_valid:
            logger.warning(f"Rejected token {token.name!r}: {validation.errors}")
            return RegistryResult(token=token, validation=validation, committed=False)
        self._insert(token)
        logger.debug(f"Added token {token.id} ({token.name})")
        return RegistryResult(token=token, validation=validation, committed=True)

    def update(self, token_id: TokenId, updates: Mapping[str, Any]) -> RegistryResult | None:
        """Merge ``updates`` into the stored token; commit only when it stays valid."""
        existing = self._tokens.get(token_id)
        if existing is None:
            return None

        candidate = update_token(existing, updates)
        validation = validate_token(candidate, self.validation_config)
        if not validation.is_valid:
            logger.warning(f"Rejected update for token {token_id}: {validation.errors}")
            return RegistryResult(token=existing, validation=validation, committed=False)

        self._tokens[token_id] = candidate
        return RegistryResult(token=candidate, validation=validation, committed=True)

    def delete(self, token_id: TokenId) -> bool:
        return self.delete_many([token_id]) == 1

    def delete_many(self, token_ids: Iterable[TokenId]) -> int:
        deleted = 0
        for token_id in list(token_ids):
            if self._tokens.pop(token_id, None) is None:
                continue
            deleted += 1
            self.selected_ids.discard(token_id)
            self.visible_ids.discard(token_id)
            self.scheduler.cancel_all_for_token(token_id)
            if self.hovered_id == token_id:
                self.hovered_id = None
            if self.dragged_id == token_id:
                self.dragged_id = None
            logger.debug(f"Deleted token {token_id}")
        return deleted

    # Selection, hover and drag

    def select(self, token_id: TokenId, extend: bool = False) -> None:
        if not extend:
            self.selected_ids.clear()
        if token_id in self._tokens:
            self.selected_ids.add(token_id)

    def select_many(self, token_ids: Iterable[TokenId]) -> None:
        self.selected_ids = {token_id for token_id in token_ids if token_id in self._tokens}

    def select_all(self) -> None:
        self.selected_ids = set(self._tokens)

    def clear_selection(self) -> None:
        self.selected_ids.clear()

    def toggle_selection(self, token_id: TokenId) -> None:
        if token_id in self.selected_ids:
            self.selected_ids.discard(token_id)
        elif token_id in self._tokens:
            self.selected_ids.add(token_id)

    def selected_tokens(self) -> list[Token]:
        return [token for token_id, token in self._tokens.items() if token_id in self.selected_ids]

    def set_hovered(self, token_id: TokenId | None) -> None:
        self.hovered_id = token_id

    def set_dragged(self, token_id: TokenId | None) -> None:
        self.dragged_id = token_id

    def set_drag_offset(self, offset: Position | None) -> None:
        self.drag_offset = offset

    # Batch operations

    def duplicate_selected(self, offset: Position = DEFAULT_DUPLICATE_OFFSET) -> list[Token]:
        selected = self.selected_tokens()
        if not selected:
            return []
        return self._insert_selected(duplicate_tokens(selected, offset))

    def copy_selected(self) -> list[Token]:
        self._clipboard = self.selected_tokens()
        return list(self._clipboard)

    def paste(self, position: Position) -> list[Token]:
        if not self._clipboard:
            return []
        anchor = self._clipboard[0].position
        offset = Position(x=position.x - anchor.x, y=position.y - anchor.y)
        return self._insert_selected(duplicate_tokens(self._clipboard, offset))

    def align_selected(self, alignment: Alignment | str) -> list[Token]:
        selected = self.selected_tokens()
        if len(selected) < 2:
            return selected
        aligned = align_tokens(selected, alignment)
        for token in aligned:
            self._tokens[token.id] = token
        return aligned

    def filtered_tokens(self) -> list[Token]:
        return sort_tokens(filter_tokens(self._tokens.values(), self.filters), self.sort_by, self.sort_order)

    def set_filters(self, **criteria: Any) -> TokenFilters:
        self.filters = self.filters.model_copy(update=criteria)
        return self.filters

    # Movement

    def move(self, token_id: TokenId, position: Position) -> RegistryResult | None:
        return self.update(token_id, {"position": position})

    def move_selected(self, offset: Position) -> list[RegistryResult]:
        results: list[RegistryResult] = []
        for token in self.selected_tokens():
            moved = Position(x=token.position.x + offset.x, y=token.position.y + offset.y)
            result = self.update(token.id, {"position": moved})
            if result is not None:
                results.append(result)
        return results

    def snap_to_grid(self, token_id: TokenId, grid_size: float) -> RegistryResult | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None
        return self.update(token_id, {"position": snap_to_grid(token.position, grid_size)})

    # Conditions

    def apply_conditions(
        self,
        token_id: TokenId,
        names: Iterable[str],
        source: str | None = None,
        animate: bool = True,
    ) -> ConditionApplicationResult | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None

        result = resolve_apply(token.conditions, names, source=source, config=self.validation_config)
        if not (result.applied or result.replaced):
            return result
        update = self.update(token_id, {"conditions": result.conditions})
        if animate and update is not None and update.committed:
            for name in result.applied:
                self.scheduler.animate_condition(update.token, name, is_adding=True)
        return result

    def remove_conditions(
        self,
        token_id: TokenId,
        names: Iterable[str],
        animate: bool = True,
    ) -> ConditionRemovalResult | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None

        result = resolve_remove(token.conditions, names)
        if len(result.conditions) == len(token.conditions):
            return result
        update = self.update(token_id, {"conditions": result.conditions})
        if animate and update is not None and update.committed:
            for name in result.removed:
                self.scheduler.animate_condition(update.token, name, is_adding=False)
        return result

    # Animated mutations

    def animate_move(
        self,
        token_id: TokenId,
        to: Position,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None
        return self.scheduler.animate_movement(token, to, self._commit_position_on_complete(token_id, to, options))

    def animate_teleport(
        self,
        token_id: TokenId,
        to: Position,
        options: AnimationOptions | None = None,
    ) -> AnimationHandle | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None
        return self.scheduler.animate_teleport(token, to, self._commit_position_on_complete(token_id, to, options))

    def apply_damage(self, token_id: TokenId, amount: int, damage_type: str | None = None) -> RegistryResult | None:
        """Take damage from temporary hit points first, then current (floored at 0)."""
        token = self._tokens.get(token_id)
        if token is None or token.hit_points is None:
            return None

        hit_points = token.hit_points
        absorbed = min(hit_points.temporary, amount)
        current = max(hit_points.current - (amount - absorbed), 0)
        result = self.update(
            token_id,
            {"hit_points": HitPoints(current=current, maximum=hit_points.maximum, temporary=hit_points.temporary - absorbed)},
        )
        if result is not None and result.committed:
            self.scheduler.animate_damage(result.token, amount, damage_type)
        return result

    def apply_healing(self, token_id: TokenId, amount: int) -> RegistryResult | None:
        token = self._tokens.get(token_id)
        if token is None or token.hit_points is None:
            return None

        hit_points = token.hit_points
        current = min(hit_points.current + amount, hit_points.maximum)
        result = self.update(token_id, {"hit_points": hit_points.model_copy(update={"current": current})})
        if result is not None and result.committed:
            self.scheduler.animate_heal(result.token, amount)
        return result

    def is_animating(self, token_id: TokenId) -> bool:
        return self.scheduler.is_animating(token_id)

    # Bulk

    def import_tokens(self, tokens: Iterable[Token]) -> list[Token]:
        imported: list[Token] = []
        for token in tokens:
            validation = validate_token(token, self.validation_config)
            if not validation.is_valid:
                logger.warning(f"Skipping invalid token {token.name!r}: {validation.errors}")
                continue
            self._insert(token)
            imported.append(token)
        return imported

    def export_tokens(self, token_ids: Iterable[TokenId] | None = None) -> list[Token]:
        if token_ids is None:
            return self.tokens()
        return [self._tokens[token_id] for token_id in token_ids if token_id in self._tokens]

    # Diagnostics

    def validate(self, token_id: TokenId) -> TokenValidationResult | None:
        token = self._tokens.get(token_id)
        if token is None:
            return None
        validation = validate_token(token, self.validation_config)
        if not validation.is_valid:
            logger.warning(f"Token validation failed for {token.name!r}: {validation.errors}")
        return validation

    def validate_all(self) -> ValidationSummary:
        summary = summarize_validation(self._tokens.values(), self.validation_config)
        logger.info(
            f"Token validation summary: {summary.valid_tokens}/{summary.total_tokens} valid, "
            f"{summary.tokens_with_warnings} with warnings"
        )
        return summary

    def stats(self) -> RegistryStats:
        tokens = self.tokens()
        return RegistryStats(
            total=len(tokens),
            players=sum(1 for token in tokens if token.is_player),
            npcs=sum(1 for token in tokens if token.category is TokenCategory.NPC),
            by_size=dict(Counter(str(token.size) for token in tokens)),
            by_category=dict(Counter(str(token.category) for token in tokens)),
            animating=sum(1 for token in tokens if self.scheduler.is_animating(token.id)),
            selected=len(self.selected_ids),
            visible=len(self.visible_ids),
        )

    def _insert(self, token: Token) -> None:
        self._tokens[token.id] = token
        self.visible_ids.add(token.id)

    def _insert_selected(self, tokens: list[Token]) -> list[Token]:
        self.selected_ids.clear()
        for token in tokens:
            self._insert(token)
            self.selected_ids.add(token.id)
        return tokens

    def _commit_position_on_complete(
        self,
        token_id: TokenId,
        to: Position,
        options: AnimationOptions | None,
    ) -> AnimationOptions:
        base = options if options is not None else AnimationOptions()
        caller_complete: Callable[[], None] | None = base.on_complete

        def _on_complete() -> None:
            if caller_complete is not None:
                caller_complete()
            self.move(token_id, to)

        return replace(base, on_complete=_on_complete)
