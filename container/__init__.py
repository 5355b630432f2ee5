"""In-memory container collaborators: application loader and token tracker."""

from .loader import InMemoryAppLoader
from .tokens import GuidTokenTracker

__all__ = ["InMemoryAppLoader", "GuidTokenTracker"]
