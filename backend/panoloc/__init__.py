"""panoloc – live place names for a panorama viewer overlay."""

from .geo import Coordinate
from .pipeline import DisplayState, ResolutionPipeline

__version__ = "0.1.0"

__all__ = ["Coordinate", "DisplayState", "ResolutionPipeline", "__version__"]
