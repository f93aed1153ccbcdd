"""
Matrix HTTP Client - Filter Mixin
Provides server-side sync filter registration
"""

import json
from typing import Any

from ..constants import CLIENT_API_PREFIX, FILTER_LITERAL_PREFIX
from ..errors import DecodeError
from .base import path_segment


def is_filter_definition(value: str) -> bool:
    """True for a literal JSON filter, False for a server-assigned filter ID"""
    return value.lstrip().startswith(FILTER_LITERAL_PREFIX)


class FilterMixin:
    """Filter-related methods for Matrix client"""

    async def upload_filter(self, definition: str | dict[str, Any]) -> str:
        """
        Register a filter with the homeserver

        Args:
            definition: Filter as a dict or its JSON text

        Returns:
            The server-assigned filter ID
        """
        if isinstance(definition, str):
            try:
                definition = json.loads(definition)
            except ValueError as e:
                raise ValueError(f"Filter is not valid JSON: {e}") from e
        if not isinstance(definition, dict):
            raise ValueError("Filter definition must be a JSON object")

        user_id = self.require_credentials().user_id
        endpoint = f"{CLIENT_API_PREFIX}/user/{path_segment(user_id)}/filter"
        response = await self._request("POST", endpoint, data=definition)

        filter_id = response.get("filter_id")
        if not isinstance(filter_id, str) or not filter_id:
            raise DecodeError(
                "Filter upload response is missing filter_id", json.dumps(response)
            )
        return filter_id

    async def get_filter(self, filter_id: str) -> dict[str, Any]:
        """
        Download a previously uploaded filter

        Args:
            filter_id: Server-assigned filter ID

        Returns:
            Filter definition
        """
        user_id = self.require_credentials().user_id
        endpoint = (
            f"{CLIENT_API_PREFIX}/user/{path_segment(user_id)}/filter/"
            f"{path_segment(filter_id)}"
        )
        return await self._request("GET", endpoint)
