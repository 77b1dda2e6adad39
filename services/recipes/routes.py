# services/recipes/routes.py
import json
import logging
from typing import Union
from uuid import UUID

from exceptions import AuthError, GenerationError, ProviderError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from generation_service import RecipeGenerationService
from models import CreditsResponse, ErrorResponse, RecipeResponse, RecipesResponse
from quota import PostgresProfileStore, ProfileStore, QuotaLedger

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, get_db
from shared.llm_client import GenerationProvider, create_provider
from shared.uuid_utils import is_valid_uuid

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_profile_store(db: Database = Depends(get_db)) -> ProfileStore:
    return PostgresProfileStore(db)


def get_generation_provider() -> GenerationProvider:
    try:
        return create_provider()
    except ValueError as e:
        logger.error(f"❌ GENERATE: Provider misconfigured: {e}")
        raise ProviderError(detail=str(e))


def _error(e: GenerationError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code, content=ErrorResponse(error=e.message).model_dump()
    )


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Errors raised while resolving route dependencies, before the handler body runs"""
    return _error(exc)


def _user_uuid(current_user: TokenData) -> UUID:
    if not is_valid_uuid(current_user.user_id):
        logger.warning(f"🚨 AUTH: Token subject is not a UUID: {current_user.user_id!r}")
        raise AuthError()
    return UUID(current_user.user_id)


@router.post(
    "/generate-recipes",
    response_model=Union[RecipesResponse, RecipeResponse],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_recipes(
    http_request: Request,
    current_user: TokenData = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
    provider: GenerationProvider = Depends(get_generation_provider),
):
    """
    Generate three recipes from ingredients, or one recipe from a reference
    recipe, and debit one credit from the caller's daily quota.
    """
    try:
        user_id = _user_uuid(current_user)

        # Body errors are reported after the quota check, like other input errors
        try:
            body = await http_request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None

        service = RecipeGenerationService(QuotaLedger(store), provider)
        return await service.generate(user_id, body)

    except GenerationError as e:
        if e.status_code >= 500:
            logger.error(f"❌ GENERATE: {type(e).__name__}: {e.detail}")
        return _error(e)
    except Exception as e:
        logger.error(f"❌ GENERATE: Unexpected error: {e}", exc_info=True)
        return _error(GenerationError())


@router.get(
    "/credits",
    response_model=CreditsResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_credits(
    current_user: TokenData = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
):
    """Current balance, applying a due daily reset first."""
    try:
        user_id = _user_uuid(current_user)
        status = await QuotaLedger(store).get_status(user_id)
        return CreditsResponse(
            credits=status.credits,
            last_credit_reset=status.last_credit_reset,
            next_reset_at=status.next_reset_at,
        )
    except GenerationError as e:
        if e.status_code >= 500:
            logger.error(f"❌ CREDITS: {type(e).__name__}: {e.detail}")
            return _error(GenerationError("Could not retrieve credits"))
        return _error(e)
