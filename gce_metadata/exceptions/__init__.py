from .base import *
from .metadata import *

__all__ = [
    "MetadataError",
    "MetadataStatusError",
    "NotDefinedError",
]
