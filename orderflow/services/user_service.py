"""
User profiles.

Identity is issued elsewhere; a profile is recorded the first time a token
is seen and is the source of truth for the role from then on.
"""

from typing import Optional
import logging

from orderflow.models.user import UserProfile, UserRole, user_key
from orderflow.schemas.user import ProfileUpdate
from orderflow.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        data = await self.store.get(user_key(user_id))
        if data is None:
            return None
        return UserProfile.from_store(data)

    async def ensure_profile(
        self,
        user_id: str,
        role: UserRole,
        email: str = "",
        name: str = "",
    ) -> UserProfile:
        """
        Return the stored profile, recording one on first sight.

        A role claim that disagrees with the stored role is ignored: roles
        are fixed when the profile is created.
        """
        existing = await self.get_profile(user_id)
        if existing is not None:
            if existing.role != role:
                logger.warning(
                    f"Token for {user_id} claims role {role.value}, "
                    f"stored role {existing.role.value} kept"
                )
            return existing

        profile = UserProfile(id=user_id, email=email, name=name, role=role)
        await self.store.set(user_key(user_id), profile.to_store())
        logger.info(f"Profile recorded for {user_id} as {role.value}")
        return profile

    async def update_profile(self, actor: UserProfile, data: ProfileUpdate) -> UserProfile:
        updated = actor.model_copy(update={"name": data.name})
        await self.store.set(user_key(actor.id), updated.to_store())
        return updated
