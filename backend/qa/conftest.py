"""
Global pytest configuration: in-memory SQLite per test, seeded master data
"""
import os
import sys
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Settings are read at import time: point them to throwaway locations first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="fms-logs-"))

# Add backend/ to the path for imports
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest
from sqlalchemy.orm import sessionmaker

from fms.db import build_engine, init_db
from fms.domain.models import Material, Warehouse
from fms.infrastructure.unit_of_work import UnitOfWork
from fms.application.services_inventory import InventoryService
from fms.application.services_maintenance import (
    MaintenanceRequestService,
    MaintenancePlanService,
    MaintenanceWorkService,
)


class TickingClock:
    """Clock that moves one minute forward on every call, so log order is deterministic."""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 8, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def engine():
    engine = build_engine("sqlite:///:memory:")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def uow(db_session):
    return UnitOfWork(db_session)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def materials(db_session):
    """M1 (no reorder point) and M2 (reorder point 10)."""
    m1 = Material(code="MAT-001", name="Air filter", unit="EA", reorder_point=Decimal("0"))
    m2 = Material(code="MAT-002", name="Bearing 6204", unit="EA", reorder_point=Decimal("10"))
    db_session.add_all([m1, m2])
    db_session.commit()
    return m1, m2


@pytest.fixture
def warehouses(db_session):
    """W1, W2 active; W3 inactive."""
    w1 = Warehouse(code="WH-01", name="Central", description="Main warehouse")
    w2 = Warehouse(code="WH-02", name="North")
    w3 = Warehouse(code="WH-03", name="Closed site", is_active=False)
    db_session.add_all([w1, w2, w3])
    db_session.commit()
    return w1, w2, w3


@pytest.fixture
def inventory(uow, clock, materials, warehouses):
    return InventoryService(uow, clock=clock)


@pytest.fixture
def request_service(uow, clock):
    return MaintenanceRequestService(uow, clock=clock)


@pytest.fixture
def plan_service(uow, clock):
    return MaintenancePlanService(uow, clock=clock)


@pytest.fixture
def work_service(uow, clock):
    return MaintenanceWorkService(uow, clock=clock)
