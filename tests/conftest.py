import os

# must be set before app.core.db is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("MEMEMIND_SECRET", "test-secret")
os.environ.setdefault("MEMEMIND_LOG_LEVEL", "WARNING")

import pytest

from app.core.db import Base, engine, create_all


@pytest.fixture(autouse=True)
def fresh_db():
    create_all()
    yield
    Base.metadata.drop_all(bind=engine)
