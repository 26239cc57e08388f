"""
searchmetrics.api -- HTTP trigger for the retention sweep.

Usage::

    uvicorn searchmetrics.api.app:create_app --factory
"""

from searchmetrics.api.app import create_app

__all__ = ["create_app"]
