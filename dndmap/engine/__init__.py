"""Token lifecycle engine for the DnD map editor."""

from .config import AnimationConfig, EngineSettings, ValidationConfig, load_settings
from .models import CreateTokenData, Position, Token, TokenFilters
from .registry import RegistryResult, TokenRegistry
from .resolver import apply_conditions, remove_conditions
from .scheduler import AnimationScheduler
from .validation import summarize_validation, validate_token

__all__ = [
    "AnimationConfig",
    "AnimationScheduler",
    "apply_conditions",
    "CreateTokenData",
    "EngineSettings",
    "load_settings",
    "Position",
    "RegistryResult",
    "remove_conditions",
    "summarize_validation",
    "Token",
    "TokenFilters",
    "TokenRegistry",
    "validate_token",
    "ValidationConfig",
]
