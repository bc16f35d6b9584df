from __future__ import annotations

import os
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"

from accredb.database import Base  # noqa: E402
from accredb.apps.accounts import models as account_models  # noqa: E402
from accredb.apps.accreditation import models as accreditation_models  # noqa: E402
from accredb.apps.audit import models as audit_models  # noqa: E402

ACCREDITATION_TABLES = [
    account_models.User.__table__,
    accreditation_models.AccreditationProject.__table__,
    accreditation_models.Accreditation.__table__,
    accreditation_models.AccreditationToken.__table__,
    audit_models.AccreditationHistory.__table__,
    audit_models.AccreditationScan.__table__,
]

# D0 is the first bump-in day; each phase is two days long.
EVENT_D0 = datetime(2026, 11, 2, tzinfo=timezone.utc)


def day(n: float) -> datetime:
    return EVENT_D0 + timedelta(days=n)


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine, tables=ACCREDITATION_TABLES)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def make_user(db_session):
    def _make(role=account_models.AccountRole.ADMIN, *, is_active=True, is_superuser=False):
        role = account_models.AccountRole(role)
        user = account_models.User(
            email=f"{role.value.lower()}-{uuid4().hex[:6]}@example.com",
            full_name=role.value.title(),
            role=role,
            is_active=is_active,
            is_superuser=is_superuser,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def project(db_session):
    """Bump-in D0..D2, live D2..D4, bump-out D4..D6."""
    row = accreditation_models.AccreditationProject(
        name="Autumn Expo",
        code=f"EXP{uuid4().hex[:5].upper()}",
        bump_in_start=day(0),
        bump_in_end=day(2),
        live_start=day(2),
        live_end=day(4),
        bump_out_start=day(4),
        bump_out_end=day(6),
        access_groups=["Exhibitor", "Contractor", "Media"],
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture()
def make_accreditation(db_session, project):
    counter = {"n": 0}

    def _make(status="DRAFT", **overrides):
        counter["n"] += 1
        values = dict(
            accreditation_number=f"ACC-{9000 + counter['n']:04d}",
            project_id=project.id,
            first_name="Mariam",
            last_name="Haddad",
            organization="Stagecraft LLC",
            job_title="Rigger",
            access_group="Contractor",
            qid_number=f"{28400000000 + counter['n']}",
            qid_expiry=date(2030, 1, 1),
            has_live_access=True,
            status=accreditation_models.AccreditationStatus(status),
        )
        values.update(overrides)
        record = accreditation_models.Accreditation(**values)
        db_session.add(record)
        db_session.commit()
        return record

    return _make
