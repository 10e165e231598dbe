"""Domain models for tokens, their conditions and identifiers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any, NewType

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

TokenId = NewType("TokenId", str)
TemplateId = NewType("TemplateId", str)
AnimationHandle = NewType("AnimationHandle", str)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_token_id() -> TokenId:
    return TokenId(str(uuid.uuid4()))


def new_animation_handle() -> AnimationHandle:
    return AnimationHandle(str(uuid.uuid4()))


class TokenSize(StrEnum):
    TINY = "tiny"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"
    GARGANTUAN = "gargantuan"


SIZE_ORDER: tuple[TokenSize, ...] = (
    TokenSize.TINY,
    TokenSize.SMALL,
    TokenSize.MEDIUM,
    TokenSize.LARGE,
    TokenSize.HUGE,
    TokenSize.GARGANTUAN,
)

# Grid squares occupied along one side.
SIZE_GRID_SQUARES: dict[str, float] = {
    TokenSize.TINY: 0.5,
    TokenSize.SMALL: 1,
    TokenSize.MEDIUM: 1,
    TokenSize.LARGE: 2,
    TokenSize.HUGE: 3,
    TokenSize.GARGANTUAN: 4,
}


def is_valid_size(size: str) -> bool:
    return size in SIZE_GRID_SQUARES


class TokenShape(StrEnum):
    CIRCLE = "circle"
    SQUARE = "square"


class TokenCategory(StrEnum):
    PLAYER = "player"
    ENEMY = "enemy"
    NPC = "npc"
    OBJECT = "object"
    ENVIRONMENT = "environment"


class LabelPosition(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    HIDDEN = "hidden"


class Position(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float


class HitPoints(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    current: int
    maximum: int
    temporary: int = 0


class TokenLabel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str
    position: LabelPosition = LabelPosition.BOTTOM
    color: str = "#FFFFFF"
    font_size: float = 12
    offset: float = 5


class ConditionEffect(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    source: str | None = None
    duration: int = -1
    applied_at: datetime = Field(default_factory=utc_now)
    applied_by: str | None = None


def _coerce_conditions(value: Any) -> Any:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(ConditionEffect(type=item) if isinstance(item, str) else item for item in value)
    return value


# Plain condition names are accepted and stamped with the current time.
ConditionList = Annotated[tuple[ConditionEffect, ...], BeforeValidator(_coerce_conditions)]


class Token(BaseModel):
    """A placed game piece.

    Invariants (opacity range, hit point bounds, hex colors) are reported by
    ``validation.validate_token`` rather than enforced here, so an invalid
    token can still be built and described to the caller.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: TokenId
    name: str
    position: Position
    size: str = TokenSize.MEDIUM
    shape: TokenShape = TokenShape.CIRCLE
    color: str = "#922610"
    border_color: str | None = "#C9AD6A"
    border_width: float | None = 2
    opacity: float = 1.0
    category: TokenCategory = TokenCategory.NPC
    layer: int = 1
    rotation: float = 0.0
    is_locked: bool = False
    is_visible: bool = True
    is_player: bool = False
    initiative: float | None = None
    hit_points: HitPoints | None = None
    armor_class: int | None = None
    speed: int | None = None
    conditions: ConditionList = ()
    label: TokenLabel | None = None
    template_id: TemplateId | None = None
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)

    @property
    def condition_names(self) -> list[str]:
        return [effect.type for effect in self.conditions]

    @property
    def display_rotation(self) -> float:
        return self.rotation % 360

    @property
    def footprint(self) -> float | None:
        return SIZE_GRID_SQUARES.get(self.size)


class CreateTokenData(BaseModel):
    """Creation bundle consumed by ``tokens.build_token``; templates supply these."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    position: Position
    size: str | None = None
    shape: TokenShape | None = None
    color: str | None = None
    category: TokenCategory | None = None
    initiative: float | None = None
    is_player: bool | None = None
    template_id: TemplateId | None = None
    hit_points: HitPoints | None = None
    armor_class: int | None = None
    speed: int | None = None
    conditions: ConditionList = ()
    label_text: str | None = None


class TokenFilters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: TokenCategory | None = None
    size: str | None = None
    is_visible: bool | None = None
    has_initiative: bool | None = None
    is_player: bool | None = None
    conditions: tuple[str, ...] = ()
