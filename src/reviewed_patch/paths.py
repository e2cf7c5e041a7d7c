"""Path management for the review ledger storage directory."""

from pathlib import Path

from .config import ReviewConfig


class StoragePaths:
    """Manages paths within the reviewed-patch storage directory."""

    def __init__(self, storage_dir: Path):
        """Initialize storage paths from root directory.

        Args:
            storage_dir: Directory holding the ledger snapshot
        """
        self.root = storage_dir
        self.reviewed_file = storage_dir / "reviewed.json"

    @classmethod
    def from_config(cls, config: ReviewConfig) -> "StoragePaths":
        """Create StoragePaths from a ReviewConfig."""
        return cls(config.storage_dir)

