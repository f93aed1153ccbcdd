"""
Matrix storage path helpers
"""

import re
from pathlib import Path


class MatrixStoragePaths:
    """
    Builds the on-disk layout shared by everything the client persists:
    store_path/homeserver/username/
    """

    @staticmethod
    def sanitize_homeserver(homeserver: str) -> str:
        """
        Turn a homeserver URL into a directory name

        Args:
            homeserver: Matrix homeserver URL

        Returns:
            Directory-safe server identifier
        """
        homeserver = homeserver.replace("https://", "").replace("http://", "")
        homeserver = homeserver.rstrip("/")
        return re.sub(r"[^\w\-\.]", "_", homeserver)

    @staticmethod
    def sanitize_username(user_id: str) -> str:
        """
        Turn a Matrix user ID into a directory name

        Args:
            user_id: Matrix user ID

        Returns:
            Directory-safe user identifier
        """
        username = user_id.replace("@", "").replace(":", "_")
        return re.sub(r"[^\w\-\.]", "_", username)

    @classmethod
    def get_user_storage_dir(
        cls, store_path: str, homeserver: str, user_id: str
    ) -> Path:
        """
        Get the storage directory for one account

        Args:
            store_path: Base storage path
            homeserver: Matrix homeserver URL
            user_id: Matrix user ID

        Returns:
            Path of the account directory
        """
        server_dir = cls.sanitize_homeserver(homeserver)
        user_dir = cls.sanitize_username(user_id)
        return Path(store_path) / server_dir / user_dir

