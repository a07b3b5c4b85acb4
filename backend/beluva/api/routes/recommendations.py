"""Furniture recommendation endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.api.deps import get_llm_service, get_owned_room_image
from beluva.auth import get_current_user
from beluva.config import settings
from beluva.database import get_db
from beluva.errors import NotFoundError
from beluva.models.contracts import (
    RecommendationRequest,
    RecommendationResponse,
    SuccessResponse,
)
from beluva.models.db import User
from beluva.providers.service import LLMService
from beluva.workflows.mock_stubs import mock_recommendations
from beluva.workflows.recommendation import generate_recommendations

logger = structlog.get_logger()

router = APIRouter(tags=["recommendations"])


@router.post("/recommend-furniture", response_model=SuccessResponse[RecommendationResponse])
async def recommend_furniture(
    body: RecommendationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """Analyze an owned room image and recommend furniture within budget."""
    room_image = await get_owned_room_image(db, current_user, body.room_image_id)
    outcome = await generate_recommendations(db, llm, current_user, room_image, body)
    await db.commit()
    return SuccessResponse(
        data=RecommendationResponse(
            recommendations=outcome.recommendations,
            session_id=outcome.session_id,
        )
    )


@router.get("/mock-recommendations", response_model=SuccessResponse[RecommendationResponse])
async def get_mock_recommendations(
    style: str = "modern",
    budget: float = Query(default=2000.0, ge=0),
    current_user: User = Depends(get_current_user),
):
    """Sample recommendations for UI development. Disabled in production."""
    if settings.is_production:
        raise NotFoundError("Not found")
    items = mock_recommendations(style=style, budget=budget)
    logger.info("mock_recommendations_served", style=style, budget=budget, count=len(items))
    return SuccessResponse(data=RecommendationResponse(recommendations=items))
