from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from stashdb.database import Base, make_engine  # noqa: E402
from stashdb.apps.audit import models as audit_models  # noqa: E402,F401
from stashdb.apps.catalog import models as catalog_models  # noqa: E402,F401
from stashdb.apps.inventory import models as inventory_models  # noqa: E402,F401
from stashdb.apps.purchasing import models as purchasing_models  # noqa: E402,F401


@pytest.fixture()
def db_engine():
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(db_engine):
    TestingSession = sessionmaker(
        bind=db_engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
