"""Live GPS path recording."""

from .recorder import PathRecorder

__all__ = ["PathRecorder"]
