"""
Byte-range streaming bridge for magnet links and Google Drive files.
"""

__version__ = "0.1.0"
