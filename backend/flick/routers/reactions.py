"""
Photo reaction API endpoints.

Handles:
- GET /reactions/mine - The acting player's reaction marks
- POST /{photo_id}/reactions - Toggle a reaction on a photo
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from flick.core.auth import AuthUser, require_auth_from_state
from flick.core.rate_limit import READ_LIMIT, REACTION_TOGGLE_LIMIT, limiter
from flick.models.reaction import (
    ToggleReactionRequest,
    ToggleReactionResponse,
    UserReactionsResponse,
)
from flick.services.reaction_service import ReactionService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_reaction_service(request: Request) -> ReactionService:
    """Dependency returning the process-wide ReactionService built in lifespan."""
    return request.app.state.reaction_service


# =============================================================================
# Static Routes (MUST come before parameterized routes)
# =============================================================================


@router.get("/reactions/mine", response_model=UserReactionsResponse)
@limiter.limit(READ_LIMIT)
async def get_my_reactions(
    request: Request,
    player_id: str = Query(...),
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
) -> UserReactionsResponse:
    """Reaction marks the player has set, keyed by photo ID."""
    reaction_service.authorize(user.auth_id, player_id)
    reactions = await reaction_service.get_user_reactions(player_id)
    return UserReactionsResponse(reactions=reactions)


# =============================================================================
# Parameterized Routes
# =============================================================================


@router.post("/{photo_id}/reactions", response_model=ToggleReactionResponse)
@limiter.limit(REACTION_TOGGLE_LIMIT)
async def toggle_reaction(
    request: Request,
    photo_id: str,
    body: ToggleReactionRequest,
    user: AuthUser = Depends(require_auth_from_state),
    reaction_service: ReactionService = Depends(get_reaction_service),
) -> ToggleReactionResponse:
    """Add the reaction if unset, remove it if set. Returns updated counts."""
    player = reaction_service.authorize(user.auth_id, body.player_id)
    return await reaction_service.toggle_reaction(
        body.player_id,
        photo_id,
        body.kind,
        reactor_name=player.get("name"),
    )
