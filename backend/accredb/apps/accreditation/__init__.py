# backend/accredb/apps/accreditation/__init__.py
"""
Accreditation app

Event projects, holder credentials and their lifecycle, verification
tokens and checkpoint evaluation.
"""

from . import models  # noqa: F401

__all__ = ["models"]
