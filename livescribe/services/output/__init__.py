"""Direct input services."""

from .base import DirectInput
from .memory import RecordingDirectInput

__all__ = ["DirectInput", "RecordingDirectInput"]
