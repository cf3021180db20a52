"""Coordinator package - dispatches uploads and tracks in-flight operations."""
from .core import UploadCoordinator
from .tracker import OperationTracker

__all__ = ["UploadCoordinator", "OperationTracker"]
