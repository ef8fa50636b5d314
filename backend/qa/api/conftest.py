"""
Fixtures for API integration tests.
FastAPI TestClient against the real app, get_db overridden with an
in-memory SQLite database created per test.
"""
import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Make sure backend/ is importable
root_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(root_dir))

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from fms.main import app
from fms.db import build_engine, init_db
from fms.dependencies import get_db
from fms.domain.models import Material, Warehouse


@pytest.fixture
def api_engine():
    engine = build_engine("sqlite:///:memory:")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed(api_engine):
    """Two materials and two warehouses, committed and released before any request"""
    TestingSession = sessionmaker(bind=api_engine, autocommit=False, autoflush=False, future=True)
    session = TestingSession()
    try:
        m1 = Material(code="MAT-001", name="Air filter", unit="EA")
        m2 = Material(code="MAT-002", name="Bearing 6204", unit="EA", reorder_point=Decimal("10"))
        w1 = Warehouse(code="WH-01", name="Central")
        w2 = Warehouse(code="WH-02", name="North")
        session.add_all([m1, m2, w1, w2])
        session.commit()
        return {"m1": m1.id, "m2": m2.id, "w1": w1.id, "w2": w2.id}
    finally:
        session.close()


@pytest.fixture
def client(api_engine, seed):
    """HTTP client whose requests use the per-test database."""
    TestingSession = sessionmaker(bind=api_engine, autocommit=False, autoflush=False, future=True)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
