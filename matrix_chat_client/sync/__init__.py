from .sync_manager import MatrixSyncManager

__all__ = ["MatrixSyncManager"]
