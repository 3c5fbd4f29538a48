"""
app/readers package marker.
"""

from app.readers.tabular_reader import SUPPORTED_EXTENSIONS, read_tabular

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "read_tabular",
]
