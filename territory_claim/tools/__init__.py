"""Supplementary tooling for replaying and inspecting claims."""

from .replay_claim import replay_track

__all__ = ["replay_track"]
