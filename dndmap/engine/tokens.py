"""Token builders and pure operations over token collections."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import StrEnum
from typing import Any

from dndmap.engine.models import (
    SIZE_ORDER,
    CreateTokenData,
    Position,
    Token,
    TokenCategory,
    TokenFilters,
    TokenLabel,
    TokenShape,
    TokenSize,
    new_token_id,
    utc_now,
)

DEFAULT_DUPLICATE_OFFSET = Position(x=50, y=50)

# Fields a caller may never overwrite through an update.
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


class Alignment(StrEnum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class SortKey(StrEnum):
    NAME = "name"
    SIZE = "size"
    CATEGORY = "category"
    CREATED = "created"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


def build_token(data: CreateTokenData) -> Token:
    """Return a new token with a fresh id, shared timestamps and factory defaults."""
    now = utc_now()
    return Token(
        id=new_token_id(),
        name=data.name,
        position=data.position,
        size=data.size or TokenSize.MEDIUM,
        shape=data.shape or TokenShape.CIRCLE,
        color=data.color or "#922610",
        border_color="#C9AD6A",
        border_width=2,
        opacity=1.0,
        category=data.category or TokenCategory.NPC,
        layer=1,
        rotation=0.0,
        is_locked=False,
        is_visible=True,
        is_player=bool(data.is_player),
        initiative=data.initiative,
        hit_points=data.hit_points,
        armor_class=data.armor_class,
        speed=data.speed,
        conditions=data.conditions,
        label=TokenLabel(text=data.label_text if data.label_text is not None else data.name),
        template_id=data.template_id,
        created_at=now,
        last_modified=now,
    )


def update_token(token: Token, updates: Mapping[str, Any]) -> Token:
    """Merge ``updates`` into a copy of ``token`` and refresh ``last_modified``.

    The merged payload is re-validated so nested values given as plain dicts
    (``{"position": {"x": 1, "y": 2}}``) are parsed. Unknown fields raise
    ``pydantic.ValidationError``.
    """
    payload = token.model_dump()
    for key, value in updates.items():
        if key in _IMMUTABLE_FIELDS:
            continue
        payload[key] = value
    payload["last_modified"] = utc_now()
    return Token.model_validate(payload)


def duplicate_tokens(tokens: Iterable[Token], offset: Position = DEFAULT_DUPLICATE_OFFSET) -> list[Token]:
    duplicated: list[Token] = []
    for token in tokens:
        now = utc_now()
        duplicated.append(
            token.model_copy(
                update={
                    "id": new_token_id(),
                    "name": f"{token.name} (Copy)",
                    "position": Position(x=token.position.x + offset.x, y=token.position.y + offset.y),
                    "created_at": now,
                    "last_modified": now,
                }
            )
        )
    return duplicated


def align_tokens(tokens: list[Token], alignment: Alignment | str) -> list[Token]:
    """Move every token onto one coordinate of a single axis.

    left/top take the minimum, right/bottom the maximum and center/middle
    the arithmetic mean. The other axis is left untouched.
    """
    if len(tokens) < 2:
        return list(tokens)

    mode = Alignment(alignment)
    xs = [token.position.x for token in tokens]
    ys = [token.position.y for token in tokens]

    if mode in (Alignment.LEFT, Alignment.CENTER, Alignment.RIGHT):
        if mode is Alignment.LEFT:
            value = min(xs)
        elif mode is Alignment.RIGHT:
            value = max(xs)
        else:
            value = sum(xs) / len(xs)
        return [update_token(token, {"position": Position(x=value, y=token.position.y)}) for token in tokens]

    if mode is Alignment.TOP:
        value = min(ys)
    elif mode is Alignment.BOTTOM:
        value = max(ys)
    else:
        value = sum(ys) / len(ys)
    return [update_token(token, {"position": Position(x=token.position.x, y=value)}) for token in tokens]


def filter_tokens(tokens: Iterable[Token], filters: TokenFilters) -> list[Token]:
    return [token for token in tokens if _matches(token, filters)]


def _matches(token: Token, filters: TokenFilters) -> bool:
    if filters.category is not None and token.category != filters.category:
        return False
    if filters.size is not None and token.size != filters.size:
        return False
    if filters.is_visible is not None and token.is_visible != filters.is_visible:
        return False
    if filters.has_initiative is not None and (token.initiative is not None) != filters.has_initiative:
        return False
    if filters.is_player is not None and token.is_player != filters.is_player:
        return False
    if filters.conditions:
        names = set(token.condition_names)
        if not all(condition in names for condition in filters.conditions):
            return False
    return True


def _size_rank(size: str) -> int:
    try:
        return SIZE_ORDER.index(TokenSize(size))
    except ValueError:
        return len(SIZE_ORDER)


def _text_key(value: str) -> tuple[str, str]:
    return (value.casefold(), value)


_SORT_KEYS: dict[SortKey, Callable[[Token], Any]] = {
    SortKey.NAME: lambda token: _text_key(token.name),
    SortKey.SIZE: lambda token: _size_rank(token.size),
    SortKey.CATEGORY: lambda token: _text_key(str(token.category)),
    SortKey.CREATED: lambda token: token.created_at,
}


def sort_tokens(
    tokens: Iterable[Token],
    key: SortKey | str = SortKey.NAME,
    order: SortOrder | str = SortOrder.ASC,
) -> list[Token]:
    # sorted() stays stable with reverse=True, matching a negated comparator.
    return sorted(tokens, key=_SORT_KEYS[SortKey(key)], reverse=SortOrder(order) is SortOrder.DESC)


def snap_to_grid(position: Position, grid_size: float) -> Position:
    return Position(
        x=round(position.x / grid_size) * grid_size,
        y=round(position.y / grid_size) * grid_size,
    )
