"""Marketing strategy, content suggestion and feedback sentiment routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.container import container
from middleware.auth import current_user_id
from models.api import SentimentRequest
from services.business_profile import BusinessProfileService
from services.marketing import MIN_CONTENT_SUGGESTIONS, MarketingService

router = APIRouter(prefix="/api/marketing", tags=["marketing"])


@router.get("/strategies")
async def get_strategies(
    budget: Optional[float] = Query(default=None),
    user_id: str = Depends(current_user_id),
    profiles: BusinessProfileService = Depends(lambda: container.business_profile_service()),
    marketing: MarketingService = Depends(lambda: container.marketing_service())
):
    profile = await profiles.get(user_id)
    return {"success": True, "data": await marketing.generate_strategies(profile, budget)}


@router.get("/content")
async def get_content_suggestions(
    count: int = Query(default=MIN_CONTENT_SUGGESTIONS),
    user_id: str = Depends(current_user_id),
    profiles: BusinessProfileService = Depends(lambda: container.business_profile_service()),
    marketing: MarketingService = Depends(lambda: container.marketing_service())
):
    profile = await profiles.get(user_id)
    return {"success": True, "data": await marketing.suggest_content(profile, count)}


@router.get("/content-outline/{content_id}")
async def get_content_outline(
    content_id: str,
    marketing: MarketingService = Depends(lambda: container.marketing_service())
):
    return {"success": True, "data": {"outline": marketing.content_outline(content_id)}}


@router.post("/sentiment-analysis")
async def analyze_sentiment(
    request: SentimentRequest,
    marketing: MarketingService = Depends(lambda: container.marketing_service())
):
    feedback = [item.model_dump(exclude_none=True) for item in request.feedback]
    return {"success": True, "data": {"analysis": await marketing.analyze_sentiment(feedback)}}
