"""Business profile storage.

The profile drives the marketing templates, so any change evicts the
owner's cached strategies and content suggestions.
"""

from typing import Any, Dict, Optional

from sqlmodel import select

from core.cache import CacheService
from core.cache_keys import CacheKeys
from core.database import Database
from core.exceptions import ConflictError, NotFoundError
from core.logging import get_logger
from models.auth import utcnow
from models.database import BusinessProfile

logger = get_logger(__name__)


class BusinessProfileService:
    def __init__(self, database: Database, cache: CacheService):
        self.database = database
        self.cache = cache

    async def find(self, user_id: str) -> Optional[BusinessProfile]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(BusinessProfile).where(BusinessProfile.user_id == user_id)
            )
            return result.scalars().first()

    async def get(self, user_id: str) -> BusinessProfile:
        profile = await self.find(user_id)
        if profile is None:
            raise NotFoundError(
                "Business profile not found",
                code="PROFILE_NOT_FOUND",
                suggestion="Create your business profile first",
            )
        return profile

    async def create(self, user_id: str, data: Dict[str, Any]) -> BusinessProfile:
        if await self.find(user_id) is not None:
            raise ConflictError(
                "Business profile already exists",
                code="PROFILE_EXISTS",
                suggestion="Update the existing profile instead",
            )

        profile = BusinessProfile(user_id=user_id, **{k: v for k, v in data.items() if v is not None})
        async with self.database.get_session() as session:
            session.add(profile)
            await session.commit()
            await session.refresh(profile)

        logger.info("Business profile created", user_id=user_id)
        await self.cache.delete_pattern(CacheKeys.marketing_pattern(user_id))
        return profile

    async def update(self, user_id: str, data: Dict[str, Any]) -> BusinessProfile:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(BusinessProfile).where(BusinessProfile.user_id == user_id)
            )
            profile = result.scalars().first()
            if profile is None:
                raise NotFoundError("Business profile not found", code="PROFILE_NOT_FOUND")

            for field, value in data.items():
                setattr(profile, field, value)
            profile.updated_at = utcnow()
            await session.commit()
            await session.refresh(profile)

        logger.info("Business profile updated", user_id=user_id, fields=sorted(data))
        await self.cache.delete_pattern(CacheKeys.marketing_pattern(user_id))
        return profile
