"""
API module: the FastAPI presentation layer.
"""

from .rest_api import LMSRestAPI

__all__ = [
    "LMSRestAPI",
]
