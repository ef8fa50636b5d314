#!/usr/bin/env python3
"""
Load test data into the facilities database.

Usage:
  cd backend && python -m scripts.seed_test_data
  cd backend && python scripts/seed_test_data.py

Creates (only what is missing):
- 3 materials, 2 warehouses
- An opening receipt for every material into the central warehouse
- One approved maintenance request with a draft plan

Meant for manual and end-to-end testing.
"""
import sys
from pathlib import Path
from datetime import date, timedelta
from decimal import Decimal

# Add backend to the path
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from fms.db import SessionLocal, init_db
from fms.application.services_inventory import InventoryService
from fms.application.services_maintenance import MaintenanceRequestService, MaintenancePlanService
from fms.domain.enums import MaintenanceType, Priority, RequestStatus
from fms.domain.models import Material, Warehouse
from fms.domain.errors import FmsError
from fms.infrastructure.unit_of_work import UnitOfWork

MATERIALS = [
    ("MAT-001", "Air filter 24x24", "EA", Decimal("10")),
    ("MAT-002", "Bearing 6204", "EA", Decimal("20")),
    ("MAT-003", "Hydraulic oil ISO 46", "L", Decimal("50")),
]
WAREHOUSES = [
    ("WH-01", "Central warehouse"),
    ("WH-02", "North site store"),
]
OPENING_QUANTITY = Decimal("100")


def seed_master_data(db):
    """Materials and warehouses by code; returns (materials, warehouses)."""
    materials = []
    for code, name, unit, reorder_point in MATERIALS:
        material = db.query(Material).filter(Material.code == code).first()
        if not material:
            material = Material(code=code, name=name, unit=unit, reorder_point=reorder_point)
            db.add(material)
            db.flush()
            print(f"   ✓ Material {code} created")
        materials.append(material)

    warehouses = []
    for code, name in WAREHOUSES:
        warehouse = db.query(Warehouse).filter(Warehouse.code == code).first()
        if not warehouse:
            warehouse = Warehouse(code=code, name=name)
            db.add(warehouse)
            db.flush()
            print(f"   ✓ Warehouse {code} created")
        warehouses.append(warehouse)

    db.commit()
    return materials, warehouses


def seed_opening_stock(uow, materials, warehouse):
    inventory = InventoryService(uow)
    count = 0
    for material in materials:
        if inventory.ledger.get(material.id, warehouse.id):
            continue
        try:
            inventory.receipt(
                material.id, warehouse.id, OPENING_QUANTITY,
                remarks="Opening balance", reference_type="SEED",
            )
            count += 1
        except FmsError as e:
            print(f"   ⚠ Opening stock for {material.code}: {e}")
    print(f"   ✓ {count} opening receipt(s)")
    return count


def seed_maintenance(uow, materials):
    requests = MaintenanceRequestService(uow)
    if requests.list(search="Seed:").total:
        return 0
    request = requests.create(
        equipment_id=1,
        requester_id=1,
        type=MaintenanceType.PREVENTIVE,
        priority=Priority.HIGH,
        title="Seed: quarterly AHU service",
    )
    requests.transition(request.id, RequestStatus.APPROVED)
    plan = MaintenancePlanService(uow).create(
        equipment_id=1,
        type=MaintenanceType.PREVENTIVE,
        title="Seed: replace filters and bearings",
        planned_start_date=date.today() + timedelta(days=3),
        request_id=request.id,
        materials=[
            {"material_id": materials[0].id, "quantity": Decimal("4")},
            {"material_id": materials[1].id, "quantity": Decimal("2")},
        ],
    )
    print(f"   ✓ Request {request.request_number} with plan {plan.plan_number}")
    return 1


def main():
    print("🌱 Facilities - test data")
    print("=" * 50)

    init_db()
    db = SessionLocal()
    uow = UnitOfWork(db)
    try:
        print("\n1. Materials and warehouses...")
        materials, warehouses = seed_master_data(db)

        print("\n2. Opening stock...")
        seed_opening_stock(uow, materials, warehouses[0])

        print("\n3. Maintenance request and plan...")
        seed_maintenance(uow, materials)

        print("\n✅ Test data ready.")
        return 0

    except Exception as e:
        print(f"\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        db.rollback()
        return 1
    finally:
        uow.close()


if __name__ == "__main__":
    sys.exit(main())
