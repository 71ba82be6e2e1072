"""blip: restart a command whenever files in a directory tree change."""

__version__ = "0.1.0"

# Public API
from blip.controller import BlipController

__all__ = [
    "__version__",
    "BlipController",
]
