"""POI proximity detection and prompt gating."""

from .detector import danger_level, evaluate
from .gate import ProximityPromptGate

__all__ = ["ProximityPromptGate", "danger_level", "evaluate"]
