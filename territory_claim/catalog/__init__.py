"""Point-of-interest catalogs."""

from .base import POICatalog
from .cached import CachedPOICatalog
from .static import StaticPOICatalog

__all__ = ["CachedPOICatalog", "POICatalog", "StaticPOICatalog"]
