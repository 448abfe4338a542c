# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from datetime import datetime

import pytest

# must be set before leasekeeper.config is imported
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp(prefix='leasekeeper-')}/test.db")
os.environ.setdefault("APP_ENV", "test")

from leasekeeper import models  # noqa: E402,F401
from leasekeeper.config import settings  # noqa: E402
from leasekeeper.db import Base, SessionLocal, engine  # noqa: E402
from leasekeeper.models import Property, Tenant  # noqa: E402
from leasekeeper.services.documents import DocumentStore  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    return DocumentStore(root=tmp_path / "uploads")


@pytest.fixture
def make_property(db):
    def _make(status: str = "open", title: str = "Unit 4B") -> Property:
        p = Property(title=title, address="12 Harbor Rd", rent_price=1450.0, status=status)
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_tenant(db):
    counter = {"n": 0}

    def _make(status: str = "pending", property_id: int | None = None) -> Tenant:
        counter["n"] += 1
        t = Tenant(
            tenant_name=f"Tenant {counter['n']}",
            email=f"tenant{counter['n']}@example.test",
            property_id=property_id,
            status=status,
        )
        db.add(t)
        db.commit()
        db.refresh(t)
        return t

    return _make


@pytest.fixture
def client(monkeypatch, tmp_path):
    from fastapi.testclient import TestClient

    from leasekeeper.main import create_app

    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    return TestClient(create_app())
