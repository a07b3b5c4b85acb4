"""Room visualization endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.api.deps import get_llm_service, get_owned_room_image
from beluva.auth import get_current_user
from beluva.database import get_db
from beluva.models.contracts import SuccessResponse, VisualizationRequest, VisualizationResponse
from beluva.models.db import User
from beluva.providers.service import LLMService
from beluva.workflows.visualization import generate_visualization

logger = structlog.get_logger()

router = APIRouter(tags=["visualizations"])


@router.post("/generate-room-visual", response_model=SuccessResponse[VisualizationResponse])
async def generate_room_visual(
    body: VisualizationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    llm: LLMService = Depends(get_llm_service),
):
    """Generate a visualization of an owned room with selected catalog furniture.

    The image URL is returned even when the design session could not be
    saved; ``session_error`` then explains the missing ``session_id``.
    """
    room_image = await get_owned_room_image(db, current_user, body.room_image_id)
    outcome = await generate_visualization(
        db,
        llm,
        current_user,
        room_image,
        body.furniture_item_ids,
        session_id=body.session_id,
    )
    await db.commit()

    write = outcome.session_write
    if not write.ok:
        logger.warning(
            "visualization_returned_without_session",
            room_image_id=str(room_image.id),
            error=write.error,
        )
    return SuccessResponse(
        data=VisualizationResponse(
            url=outcome.url,
            session_id=write.session_id,
            session_error=write.error,
        )
    )
