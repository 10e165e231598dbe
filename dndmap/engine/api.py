"""FastAPI endpoints for token creation, updates, conditions and validation."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .config import load_settings
from .models import CreateTokenData, Token, TokenId
from .registry import RegistryResult, TokenRegistry
from .scheduler import AnimationScheduler
from .tokens import SortKey, SortOrder, filter_tokens, sort_tokens


class ValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    dnd_compliant: bool


class TokenMutationResponse(BaseModel):
    token: Token
    validation: ValidationResponse
    committed: bool


class TokenListResponse(BaseModel):
    tokens: list[Token]


class UpdateTokenRequest(BaseModel):
    updates: dict[str, Any]


class DeleteTokenResponse(BaseModel):
    deleted: bool


class ApplyConditionsRequest(BaseModel):
    conditions: list[str] = Field(min_length=1)
    source: str | None = None


class RemoveConditionsRequest(BaseModel):
    conditions: list[str] = Field(min_length=1)


class ConditionApplicationResponse(BaseModel):
    success: bool
    applied: list[str]
    blocked: list[str]
    replaced: list[str]
    warnings: list[str]
    token: Token


class ConditionRemovalResponse(BaseModel):
    success: bool
    removed: list[str]
    remaining: list[str]
    warnings: list[str]
    token: Token


class ValidationSummaryResponse(BaseModel):
    total_tokens: int
    valid_tokens: int
    tokens_with_errors: int
    tokens_with_warnings: int
    dnd_compliant_tokens: int
    common_issues: list[str]


def _default_registry() -> TokenRegistry:
    settings = load_settings()
    return TokenRegistry(
        scheduler=AnimationScheduler(config=settings.animation),
        validation_config=settings.validation,
    )


def _mutation_response(result: RegistryResult) -> TokenMutationResponse:
    if not result.committed:
        raise HTTPException(status_code=422, detail={"errors": result.validation.errors})
    return TokenMutationResponse(
        token=result.token,
        validation=ValidationResponse(**vars(result.validation)),
        committed=result.committed,
    )


def create_app(registry: TokenRegistry | None = None) -> FastAPI:
    app = FastAPI(title="DnD Map Token API", version="0.1.0")
    token_registry = registry if registry is not None else _default_registry()
    app.state.registry = token_registry

    def get_registry() -> TokenRegistry:
        return token_registry

    def get_token_or_404(token_id: str, local_registry: TokenRegistry) -> Token:
        token = local_registry.get(TokenId(token_id))
        if token is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return token

    @app.post("/api/tokens", response_model=TokenMutationResponse)
    def create_token(
        payload: CreateTokenData,
        local_registry: TokenRegistry = Depends(get_registry),
    ) -> TokenMutationResponse:
        return _mutation_response(local_registry.create(payload))

    @app.get("/api/tokens", response_model=TokenListResponse)
    def list_tokens(
        sort_by: SortKey | None = Query(default=None),
        order: SortOrder | None = Query(default=None),
        local_registry: TokenRegistry = Depends(get_registry),
    ) -> TokenListResponse:
        # Query parameters sort this response only; registry sort state is left alone.
        visible = filter_tokens(local_registry.tokens(), local_registry.filters)
        return TokenListResponse(
            tokens=sort_tokens(visible, sort_by or local_registry.sort_by, order or local_registry.sort_order)
        )

    @app.get("/api/tokens/{token_id}", response_model=Token)
    def get_token(token_id: str, local_registry: TokenRegistry = Depends(get_registry)) -> Token:
        return get_token_or_404(token_id, local_registry)

    @app.patch("/api/tokens/{token_id}", response_model=TokenMutationResponse)
    def update_token(
        token_id: str,
        payload: UpdateTokenRequest,
        local_registry: TokenRegistry = Depends(get_registry),
    ) -> TokenMutationResponse:
        get_token_or_404(token_id, local_registry)
        try:
            result = local_registry.update(TokenId(token_id), payload.updates)
        except ValueError as exc:
            # pydantic.ValidationError subclasses ValueError.
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if result is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return _mutation_response(result)

    @app.delete("/api/tokens/{token_id}", response_model=DeleteTokenResponse)
    def delete_token(token_id: str, local_registry: TokenRegistry = Depends(get_registry)) -> DeleteTokenResponse:
        return DeleteTokenResponse(deleted=local_registry.delete(TokenId(token_id)))

    @app.post("/api/tokens/{token_id}/conditions", response_model=ConditionApplicationResponse)
    def apply_conditions(
        token_id: str,
        payload: ApplyConditionsRequest,
        local_registry: TokenRegistry = Depends(get_registry),
    ) -> ConditionApplicationResponse:
        result = local_registry.apply_conditions(TokenId(token_id), payload.conditions, source=payload.source)
        if result is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return ConditionApplicationResponse(
            success=result.success,
            applied=result.applied,
            blocked=result.blocked,
            replaced=result.replaced,
            warnings=result.warnings,
            token=get_token_or_404(token_id, local_registry),
        )

    @app.post("/api/tokens/{token_id}/conditions/remove", response_model=ConditionRemovalResponse)
    def remove_conditions(
        token_id: str,
        payload: RemoveConditionsRequest,
        local_registry: TokenRegistry = Depends(get_registry),
    ) -> ConditionRemovalResponse:
        result = local_registry.remove_conditions(TokenId(token_id), payload.conditions)
        if result is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return ConditionRemovalResponse(
            success=result.success,
            removed=result.removed,
            remaining=[str(condition) for condition in result.remaining],
            warnings=result.warnings,
            token=get_token_or_404(token_id, local_registry),
        )

    @app.get("/api/tokens/{token_id}/validation", response_model=ValidationResponse)
    def validate_token(token_id: str, local_registry: TokenRegistry = Depends(get_registry)) -> ValidationResponse:
        validation = local_registry.validate(TokenId(token_id))
        if validation is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return ValidationResponse(**vars(validation))

    @app.get("/api/validation/summary", response_model=ValidationSummaryResponse)
    def validation_summary(local_registry: TokenRegistry = Depends(get_registry)) -> ValidationSummaryResponse:
        return ValidationSummaryResponse(**vars(local_registry.validate_all()))

    return app


app = create_app()
