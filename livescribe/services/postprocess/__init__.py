"""Post-processing services."""

from .base import PostProcessor
from .dummy import DummyPostProcessor

__all__ = ["DummyPostProcessor", "PostProcessor"]
