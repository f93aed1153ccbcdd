"""
Matrix HTTP Client - Profile Mixin
Provides own profile and notification queries
"""

from typing import Any

from ..constants import CLIENT_API_PREFIX, DEFAULT_NOTIFICATIONS_LIMIT
from .base import path_segment
from .responses import Profile


class ProfileMixin:
    """Profile-related methods for Matrix client"""

    async def get_profile(self, user_id: str) -> Profile:
        endpoint = f"{CLIENT_API_PREFIX}/profile/{path_segment(user_id)}"
        response = await self._request("GET", endpoint)
        return Profile.from_dict(response)

    async def get_own_profile(self) -> Profile:
        """Display name and avatar of the logged-in user"""
        return await self.get_profile(self.require_credentials().user_id)

    async def get_notifications(
        self,
        limit: int = DEFAULT_NOTIFICATIONS_LIMIT,
        from_token: str | None = None,
        only: str | None = None,
    ) -> dict[str, Any]:
        """
        Get recent notifications

        Args:
            limit: Maximum number of notifications
            from_token: Pagination token
            only: ``highlight`` to get only highlights

        Returns:
            Response with notifications and next_token
        """
        params: dict[str, Any] = {"limit": limit}
        if from_token:
            params["from"] = from_token
        if only:
            params["only"] = only
        return await self._request(
            "GET", f"{CLIENT_API_PREFIX}/notifications", params=params
        )
