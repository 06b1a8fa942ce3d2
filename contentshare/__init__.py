"""
Content Share backend.

File sharing with expiring share codes and a background cleanup job that
tombstones expired shares and removes their blobs.
"""

__version__ = "1.0.0"
