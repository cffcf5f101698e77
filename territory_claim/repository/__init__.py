"""Territory storage adapters."""

from .base import TerritoryRepository
from .memory import InMemoryTerritoryRepository
from .supabase import SupabaseTerritoryRepository

__all__ = [
    "InMemoryTerritoryRepository",
    "SupabaseTerritoryRepository",
    "TerritoryRepository",
]
