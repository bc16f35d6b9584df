# backend/accredb/apps/accounts/__init__.py
"""
Accounts app

Read-only view of portal users and their roles. Accounts, passwords and
sessions are managed by the surrounding portal; the accreditation core
looks users up to attribute and authorise lifecycle operations.
"""

from . import models  # noqa: F401

__all__ = ["models"]
