# backend/accredb/apps/audit/__init__.py
"""
Audit app

Append-only lifecycle history and the checkpoint scan log.
"""

from . import models  # noqa: F401

__all__ = ["models"]
