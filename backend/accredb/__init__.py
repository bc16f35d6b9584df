# backend/accredb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in accredb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # portal users + roles
from .apps.accreditation import models as accreditation_models  # projects, credentials, token ledger
from .apps.audit import models as audit_models                # history + scan log

__all__ = [
    "accounts_models",
    "accreditation_models",
    "audit_models",
]
