"""Furniture recommendation workflow.

room image URL -> prompt -> provider image analysis -> JSON extraction ->
validated recommendation list -> new design session row.

Recommendation ids come from the model and are passed through unchanged.
Each recommendation is flagged ``in_catalog`` when its id matches a catalog row.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.config import settings
from beluva.errors import ProviderError, RecommendationGenerationError
from beluva.models.contracts import Recommendation, RecommendationRequest
from beluva.models.db import FurnitureItem, RoomImage, User, UserSession
from beluva.providers.service import LLMService
from beluva.utils import storage

log = structlog.get_logger("beluva.recommendation")

MAX_RECOMMENDATIONS = 5
ANALYSIS_MAX_TOKENS = 2048

FALLBACK_RECOMMENDATIONS: tuple[dict[str, Any], ...] = (
    {
        "id": "fallback-1",
        "name": "Mid-Century Modern Sofa",
        "description": "Elegant 3-seater sofa with wooden legs and light gray upholstery",
        "price": 799.99,
        "image_url": "https://example.com/sofa.jpg",
        "purchase_link": "https://example.com/sofa",
        "reason": (
            "The clean lines match the room's aesthetic and the neutral color "
            "complements the existing decor."
        ),
        "score": 0.5,
    },
    {
        "id": "fallback-2",
        "name": "Round Coffee Table",
        "description": "Solid wood coffee table with storage shelf",
        "price": 249.99,
        "image_url": "https://example.com/table.jpg",
        "purchase_link": "https://example.com/table",
        "reason": (
            "The round shape works well with the seating arrangement and contrasts "
            "with the rectangular elements."
        ),
        "score": 0.5,
    },
)

_PROMPT_TEMPLATE = """\
You are an interior design AI assistant. Analyze the provided room image and recommend \
furniture items that would complement the room.

Room image: {image_url}

Constraints:
- Total budget: ${budget:.2f}
- Style preference: {style}
- Furniture types needed: {furniture_types}

Provide {count} specific furniture recommendations that:
1. Match the aesthetic of the room
2. Stay within budget
3. Are appropriate for the size and layout of the room
4. Complement existing furniture visible in the image

For each recommendation include the item name, a brief description, an estimated price, \
the reason it would work well in this space, and a score between 0 and 1 for how \
confident you are in the fit.

Respond with JSON only, using exactly this structure:
{{
  "recommendations": [
    {{
      "id": "unique-id-1",
      "name": "Item name",
      "description": "Brief description",
      "price": 299.99,
      "image_url": "https://example.com/image.jpg",
      "purchase_link": "https://example.com/product",
      "reason": "Why this works in the space",
      "score": 0.8
    }}
  ]
}}
"""


@dataclass(frozen=True)
class RecommendationOutcome:
    recommendations: list[Recommendation]
    session_id: uuid.UUID | None
    used_fallback: bool = False


def build_recommendation_prompt(
    image_url: str,
    budget: float,
    style: str | None,
    furniture_types: list[str],
) -> str:
    return _PROMPT_TEMPLATE.format(
        image_url=image_url,
        budget=budget,
        style=style or "No specific style preference",
        furniture_types=", ".join(furniture_types),
        count=MAX_RECOMMENDATIONS,
    )


def _strip_code_fence(text: str) -> str:
    """Remove markdown code fences from model responses."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the first brace-delimited JSON object in a free-text response.

    Raises ValueError when no object can be found or parsed.
    """
    text = _strip_code_fence(text)
    start = text.find("{")
    if start == -1:
        raise ValueError("No JSON object found in response")

    # Walk forward to the matching closing brace, skipping braces in strings
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start : i + 1])
                except json.JSONDecodeError as exc:
                    raise ValueError(f"Invalid JSON in response: {exc}") from exc
                if not isinstance(parsed, dict):
                    raise ValueError("Top-level JSON is not an object")
                return parsed
    raise ValueError("Unterminated JSON object in response")


def _coerce_item(raw: dict[str, Any], index: int) -> dict[str, Any]:
    item = dict(raw)
    item["id"] = str(item.get("id") or f"rec-{index + 1}")
    score = item.get("score")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        item["score"] = min(max(float(score), 0.0), 1.0)
    else:
        item.pop("score", None)
    item.pop("in_catalog", None)
    for key in ("description", "reason"):
        if item.get(key) is None:
            item.pop(key, None)
    return item


def parse_recommendations(text: str) -> list[Recommendation]:
    """Turn a model response into validated recommendations.

    Malformed entries are dropped. Raises ValueError when nothing valid remains.
    """
    data = extract_json_object(text)
    raw_items = data.get("recommendations")
    if not isinstance(raw_items, list):
        raise ValueError("Response has no 'recommendations' array")

    valid: list[Recommendation] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            log.warning("recommendation_dropped", reason="not an object", index=index)
            continue
        try:
            valid.append(Recommendation.model_validate(_coerce_item(raw, index)))
        except ValidationError as exc:
            log.warning(
                "recommendation_dropped",
                index=index,
                errors=[e["msg"] for e in exc.errors()],
            )
            continue
        if len(valid) == MAX_RECOMMENDATIONS:
            break

    if not valid:
        raise ValueError("Response contained no valid recommendations")
    return valid


def fallback_recommendations() -> list[Recommendation]:
    return [Recommendation.model_validate(item) for item in FALLBACK_RECOMMENDATIONS]


async def _mark_catalog_items(db: AsyncSession, recommendations: list[Recommendation]) -> None:
    """Set ``in_catalog`` on recommendations whose id is an existing catalog row."""
    ids: dict[uuid.UUID, list[Recommendation]] = {}
    for rec in recommendations:
        try:
            ids.setdefault(uuid.UUID(rec.id), []).append(rec)
        except ValueError:
            continue
    if not ids:
        return
    result = await db.execute(select(FurnitureItem.id).where(FurnitureItem.id.in_(list(ids))))
    for found in result.scalars():
        for rec in ids[found]:
            rec.in_catalog = True


async def _create_session(
    db: AsyncSession,
    user: User,
    room_image: RoomImage,
    request: RecommendationRequest,
) -> uuid.UUID | None:
    """Record the design session. Failure is logged, not raised."""
    row = UserSession(
        user_id=user.id,
        uploaded_image_id=room_image.id,
        selected_furniture_ids=[],
        preferences={
            "budget": request.budget,
            "style": request.style,
            "furniture_types": request.furniture_types,
        },
    )
    try:
        async with db.begin_nested():
            db.add(row)
            await db.flush()
    except SQLAlchemyError as exc:
        log.error("recommendation_session_write_failed", error=str(exc))
        return None
    return row.id


async def generate_recommendations(
    db: AsyncSession,
    llm: LLMService,
    user: User,
    room_image: RoomImage,
    request: RecommendationRequest,
) -> RecommendationOutcome:
    """Recommend furniture for an owned room image.

    Returns a non-empty list or raises RecommendationGenerationError. Outside
    production, an unusable provider response is replaced by a fixed
    fallback list.
    """
    image_url = await asyncio.to_thread(storage.public_url, room_image.file_path)
    prompt = build_recommendation_prompt(
        image_url, request.budget, request.style, request.furniture_types
    )

    log.info(
        "recommendation_requested",
        room_image_id=str(room_image.id),
        budget=request.budget,
        style=request.style,
        furniture_types=request.furniture_types,
        provider=llm.provider_name,
    )

    used_fallback = False
    try:
        result = await llm.analyze_image(image_url, prompt, max_tokens=ANALYSIS_MAX_TOKENS)
        recommendations = parse_recommendations(result.text)
    except (ProviderError, ValueError) as exc:
        log.error(
            "recommendation_generation_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        if settings.is_production:
            raise RecommendationGenerationError(
                "Failed to generate furniture recommendations"
            ) from exc
        log.warning("recommendation_fallback_used", environment=settings.environment)
        recommendations = fallback_recommendations()
        used_fallback = True

    await _mark_catalog_items(db, recommendations)
    session_id = await _create_session(db, user, room_image, request)

    log.info(
        "recommendation_complete",
        room_image_id=str(room_image.id),
        count=len(recommendations),
        session_id=str(session_id) if session_id else None,
        used_fallback=used_fallback,
    )
    return RecommendationOutcome(
        recommendations=recommendations,
        session_id=session_id,
        used_fallback=used_fallback,
    )
