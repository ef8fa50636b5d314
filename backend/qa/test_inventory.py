"""
Tests for the inventory movements

Covers:
- receipt, issue, transfer and adjustment rules and log records
- the receipt -> issue -> failed issue -> transfer -> adjustment scenario
- property: quantity never negative, transfers conserve the total,
  the ledger equals the replay of the log
- rollback: a failure inside the atomic unit leaves no trace
- concurrency (file database, one session per thread): over-draws fail,
  opposite transfers both finish
"""
import random
import threading
import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from fms.db import build_engine, init_db
from fms.domain.models import Material, Warehouse
from fms.infrastructure.unit_of_work import UnitOfWork
from fms.application.services_inventory import InventoryService

from fms.domain.enums import MovementType
from fms.domain.errors import (
    NotFoundError,
    InvalidQuantityError,
    InsufficientStockError,
    SameWarehouseError,
    StockValidationError,
    FmsError,
)
from fms.domain.models_inventory import MaterialTransaction, MaterialStock
from fms.application.services_movement_log import TransactionFilter


def _records(db_session):
    return db_session.query(MaterialTransaction).order_by(MaterialTransaction.id).all()


class TestReceipt:

    def test_receipt_creates_stock_and_record(self, inventory, db_session, materials, warehouses):
        m, w = materials[0], warehouses[0]
        stock = inventory.receipt(m.id, w.id, 100, unit_price=Decimal("2.50"), remarks="PO 17",
                                  reference_type="PURCHASE_ORDER", reference_id=17)
        assert stock.quantity == Decimal("100")
        assert stock.material.code == "MAT-001"
        assert stock.warehouse.code == "WH-01"

        records = _records(db_session)
        assert len(records) == 1
        r = records[0]
        assert r.transaction_type == MovementType.RECEIPT.value
        assert r.to_warehouse_id == w.id and r.from_warehouse_id is None
        assert r.quantity == Decimal("100")
        assert r.unit_price == Decimal("2.50")
        assert r.reference_id == "17"
        assert r.transaction_number == "TXN202501150001"

    @pytest.mark.parametrize("quantity", [0, -1, "abc"])
    def test_receipt_rejects_invalid_quantity(self, inventory, db_session, materials, warehouses, quantity):
        with pytest.raises(InvalidQuantityError):
            inventory.receipt(materials[0].id, warehouses[0].id, quantity)
        assert _records(db_session) == []

    def test_receipt_unknown_material(self, inventory, warehouses):
        with pytest.raises(NotFoundError):
            inventory.receipt(999, warehouses[0].id, 1)

    def test_receipt_inactive_warehouse(self, inventory, materials, warehouses):
        with pytest.raises(NotFoundError):
            inventory.receipt(materials[0].id, warehouses[2].id, 1)


class TestIssue:

    def test_issue_decrements_and_logs_from_side(self, inventory, db_session, materials, warehouses):
        m, w = materials[0], warehouses[0]
        inventory.receipt(m.id, w.id, 10)
        stock = inventory.issue(m.id, w.id, 4, reference_type="MAINTENANCE_WORK", reference_id="WRK2025010001")
        assert stock.quantity == Decimal("6")

        issue = _records(db_session)[-1]
        assert issue.transaction_type == MovementType.ISSUE.value
        assert issue.from_warehouse_id == w.id and issue.to_warehouse_id is None
        assert issue.quantity == Decimal("4")

    def test_issue_insufficient_leaves_state(self, inventory, db_session, materials, warehouses):
        m, w = materials[0], warehouses[0]
        inventory.receipt(m.id, w.id, 10)
        with pytest.raises(InsufficientStockError):
            inventory.issue(m.id, w.id, 11)
        assert inventory.get_stock(m.id, w.id).quantity == Decimal("10")
        assert len(_records(db_session)) == 1

    def test_issue_without_stock_row(self, inventory, materials, warehouses):
        with pytest.raises(InsufficientStockError):
            inventory.issue(materials[0].id, warehouses[0].id, 1)

    def test_issue_rejects_zero(self, inventory, materials, warehouses):
        with pytest.raises(InvalidQuantityError):
            inventory.issue(materials[0].id, warehouses[0].id, 0)

    def test_fractional_issues_drain_exactly(self, inventory, materials, warehouses):
        m, w = materials[0], warehouses[0]
        inventory.receipt(m.id, w.id, Decimal("0.3"))
        inventory.issue(m.id, w.id, Decimal("0.1"))
        stock = inventory.issue(m.id, w.id, Decimal("0.2"))
        assert stock.quantity == Decimal("0")
        assert inventory.reconcile() == []


class TestTransfer:

    def test_transfer_moves_quantity(self, inventory, db_session, materials, warehouses):
        m, (w1, w2, _) = materials[0], warehouses
        inventory.receipt(m.id, w1.id, 50)
        inventory.receipt(m.id, w2.id, 5)

        dest = inventory.transfer(m.id, w1.id, w2.id, 20, remarks="rebalance")
        assert dest.warehouse_id == w2.id
        assert dest.quantity == Decimal("25")
        assert inventory.get_stock(m.id, w1.id).quantity == Decimal("30")

        t = _records(db_session)[-1]
        assert t.transaction_type == MovementType.TRANSFER.value
        assert (t.from_warehouse_id, t.to_warehouse_id) == (w1.id, w2.id)
        assert t.quantity == Decimal("20")

    def test_transfer_same_warehouse(self, inventory, materials, warehouses):
        with pytest.raises(SameWarehouseError):
            inventory.transfer(materials[0].id, warehouses[0].id, warehouses[0].id, 1)

    def test_transfer_insufficient(self, inventory, db_session, materials, warehouses):
        m, (w1, w2, _) = materials[0], warehouses
        inventory.receipt(m.id, w1.id, 5)
        with pytest.raises(InsufficientStockError):
            inventory.transfer(m.id, w1.id, w2.id, 6)
        assert inventory.get_stock(m.id, w1.id).quantity == Decimal("5")
        assert inventory.ledger.get(m.id, w2.id) is None

    def test_fractional_transfer_empties_source(self, inventory, materials, warehouses):
        m, (w1, w2, _) = materials[0], warehouses
        inventory.receipt(m.id, w1.id, Decimal("0.3"))
        inventory.issue(m.id, w1.id, Decimal("0.1"))
        dest = inventory.transfer(m.id, w1.id, w2.id, Decimal("0.2"))
        assert dest.quantity == Decimal("0.2")
        assert inventory.get_stock(m.id, w1.id).quantity == Decimal("0")

    def test_transfer_is_atomic_when_log_append_fails(self, inventory, db_session, materials, warehouses, monkeypatch):
        """Decrement and increment are rolled back with the failed record"""
        m, (w1, w2, _) = materials[0], warehouses
        inventory.receipt(m.id, w1.id, 10)

        def broken_append(record):
            raise RuntimeError("storage down")

        monkeypatch.setattr(inventory.log, "append", broken_append)
        with pytest.raises(RuntimeError):
            inventory.transfer(m.id, w1.id, w2.id, 4)

        assert inventory.get_stock(m.id, w1.id).quantity == Decimal("10")
        assert inventory.ledger.get(m.id, w2.id) is None
        assert len(_records(db_session)) == 1


class TestAdjustment:

    def test_adjust_down_logs_from_side(self, inventory, db_session, materials, warehouses):
        m, w = materials[0], warehouses[0]
        inventory.receipt(m.id, w.id, 70)
        stock = inventory.adjust(m.id, w.id, 50, "cycle count")
        assert stock.quantity == Decimal("50")

        a = _records(db_session)[-1]
        assert a.transaction_type == MovementType.ADJUSTMENT.value
        assert a.from_warehouse_id == w.id and a.to_warehouse_id is None
        assert a.quantity == Decimal("20")
        assert a.remarks == "Adjustment: 70 → 50. cycle count"

    def test_adjust_up_creates_row_and_logs_to_side(self, inventory, db_session, materials, warehouses):
        m, w = materials[1], warehouses[1]
        stock = inventory.adjust(m.id, w.id, Decimal("12.5"), "found in storage")
        assert stock.quantity == Decimal("12.5")

        a = _records(db_session)[-1]
        assert a.to_warehouse_id == w.id and a.from_warehouse_id is None
        assert a.quantity == Decimal("12.5")
        assert a.remarks == "Adjustment: 0 → 12.5. found in storage"

    def test_adjust_to_same_quantity_records_count(self, inventory, db_session, materials, warehouses):
        m, w = materials[0], warehouses[0]
        inventory.receipt(m.id, w.id, 8)
        inventory.adjust(m.id, w.id, 8, "count confirmed")
        a = _records(db_session)[-1]
        assert a.quantity == Decimal("0")
        assert a.to_warehouse_id == w.id

    def test_adjust_negative(self, inventory, materials, warehouses):
        with pytest.raises(InvalidQuantityError):
            inventory.adjust(materials[0].id, warehouses[0].id, -1, "oops")

    @pytest.mark.parametrize("remarks", ["", "   ", None])
    def test_adjust_requires_remarks(self, inventory, materials, warehouses, remarks):
        with pytest.raises(StockValidationError):
            inventory.adjust(materials[0].id, warehouses[0].id, 1, remarks)


class TestInventoryScenario:

    def test_receipt_issue_transfer_adjust(self, inventory, db_session, materials, warehouses):
        m1 = materials[0].id
        w1, w2 = warehouses[0].id, warehouses[1].id

        inventory.receipt(m1, w1, 100)
        assert inventory.get_stock(m1, w1).quantity == Decimal("100")
        receipts = [r for r in _records(db_session) if r.transaction_type == "RECEIPT"]
        assert len(receipts) == 1
        assert (receipts[0].to_warehouse_id, receipts[0].quantity) == (w1, Decimal("100"))

        assert inventory.issue(m1, w1, 30).quantity == Decimal("70")

        with pytest.raises(InsufficientStockError):
            inventory.issue(m1, w1, 1000)
        assert inventory.get_stock(m1, w1).quantity == Decimal("70")

        inventory.transfer(m1, w1, w2, 70)
        assert inventory.get_stock(m1, w1).quantity == Decimal("0")
        assert inventory.get_stock(m1, w2).quantity == Decimal("70")

        assert inventory.adjust(m1, w2, 50, "cycle count").quantity == Decimal("50")
        adjustments = [r for r in _records(db_session) if r.transaction_type == "ADJUSTMENT"]
        assert len(adjustments) == 1
        assert adjustments[0].from_warehouse_id == w2
        assert adjustments[0].quantity == Decimal("20")

        numbers = [r.transaction_number for r in _records(db_session)]
        assert numbers == [f"TXN2025011500{i:02d}" for i in range(1, 5)]
        assert inventory.reconcile() == []


class TestInventoryProperties:

    @pytest.mark.parametrize("scale", [1, 100, 10000], ids=["whole", "cents", "four_decimals"])
    def test_random_operations_keep_invariants(self, inventory, db_session, materials, warehouses, scale):
        """Quantity >= 0 after every operation, transfers conserve totals, ledger == log replay"""
        rng = random.Random(20250115 + scale)
        mids = [m.id for m in materials]
        wids = [warehouses[0].id, warehouses[1].id]

        for _ in range(120):
            m = rng.choice(mids)
            a, b = rng.sample(wids, 2)
            q = Decimal(rng.randint(1, 40 * scale)) / scale
            op = rng.choice(["receipt", "issue", "transfer", "adjust"])
            before_a = inventory.ledger.quantity(m, a)
            before_b = inventory.ledger.quantity(m, b)
            try:
                if op == "receipt":
                    inventory.receipt(m, a, q)
                elif op == "issue":
                    inventory.issue(m, a, q)
                elif op == "transfer":
                    inventory.transfer(m, a, b, q)
                    assert inventory.ledger.quantity(m, a) == before_a - q
                    assert inventory.ledger.quantity(m, b) == before_b + q
                else:
                    inventory.adjust(m, a, Decimal(rng.randint(0, 60 * scale)) / scale, "random count")
            except FmsError:
                assert inventory.ledger.quantity(m, a) == before_a
                assert inventory.ledger.quantity(m, b) == before_b

            for stock in db_session.query(MaterialStock).all():
                assert stock.quantity >= 0

        assert inventory.reconcile() == []
        for m in mids:
            for w in wids:
                assert inventory.ledger.quantity(m, w) == inventory.log.balance(m, w)

    def test_reconcile_reports_tampered_ledger(self, inventory, db_session, materials, warehouses):
        m, w = materials[0].id, warehouses[0].id
        inventory.receipt(m, w, 10)
        db_session.query(MaterialStock).filter_by(material_id=m, warehouse_id=w).update({"quantity": Decimal("9")})
        db_session.commit()

        assert inventory.reconcile() == [
            {"material_id": m, "warehouse_id": w, "ledger": Decimal("9.0000"), "log": Decimal("10.0000")}
        ]


class TestListTransactions:

    def test_filters_and_pagination(self, inventory, materials, warehouses):
        m1, m2 = materials[0].id, materials[1].id
        w1, w2 = warehouses[0].id, warehouses[1].id
        inventory.receipt(m1, w1, 10)
        inventory.receipt(m2, w2, 10)
        inventory.transfer(m1, w1, w2, 3)
        inventory.issue(m2, w2, 2)

        page = inventory.list_transactions(TransactionFilter(warehouse_id=w1))
        assert page.total == 2
        assert [t.transaction_type for t in page.items] == ["TRANSFER", "RECEIPT"]

        page = inventory.list_transactions(TransactionFilter(material_id=m2, transaction_type=MovementType.ISSUE))
        assert page.total == 1

        page = inventory.list_transactions(TransactionFilter(skip=2, take=2))
        assert page.total == 4
        assert page.page == 2 and page.page_size == 2
        assert [t.transaction_number for t in page.items] == ["TXN202501150002", "TXN202501150001"]


@pytest.fixture
def file_db(tmp_path):
    """File database shared by several threads, seeded with M1 and W1/W2."""
    engine = build_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    init_db(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

    session = Session()
    try:
        material = Material(code="MAT-001", name="Air filter", unit="EA")
        w1 = Warehouse(code="WH-01", name="Central")
        w2 = Warehouse(code="WH-02", name="North")
        session.add_all([material, w1, w2])
        session.commit()
        ids = {"m": material.id, "w1": w1.id, "w2": w2.id}
    finally:
        session.close()

    yield Session, ids
    engine.dispose()


def _run_threads(Session, jobs):
    """Run each job(inventory) in its own thread and session; returns (successes, failures, errors)."""
    successes, failures, errors = [], [], []
    lock = threading.Lock()
    start = threading.Barrier(len(jobs))

    def worker(job):
        uow = UnitOfWork(Session())
        try:
            start.wait()
            outcome = job(InventoryService(uow))
            with lock:
                successes.append(outcome)
        except InsufficientStockError as e:
            uow.rollback()
            with lock:
                failures.append(e)
        except Exception as e:  # collected and asserted below
            uow.rollback()
            with lock:
                errors.append(e)
        finally:
            uow.close()

    threads = [threading.Thread(target=worker, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return successes, failures, errors


class TestInventoryConcurrency:

    def test_concurrent_issues_never_overdraw(self, file_db):
        """8 x 0.3 requested from 1.0 on hand: exactly 3 succeed, 5 fail"""
        Session, ids = file_db
        uow = UnitOfWork(Session())
        try:
            InventoryService(uow).receipt(ids["m"], ids["w1"], Decimal("1.0"))
        finally:
            uow.close()

        def issue(inventory):
            return inventory.issue(ids["m"], ids["w1"], Decimal("0.3")).quantity

        successes, failures, errors = _run_threads(Session, [issue] * 8)

        assert errors == []
        assert len(successes) == 3
        assert len(failures) == 5
        assert all(q >= 0 for q in successes)

        uow = UnitOfWork(Session())
        try:
            inventory = InventoryService(uow)
            assert inventory.ledger.quantity(ids["m"], ids["w1"]) == Decimal("0.1")
            assert inventory.reconcile() == []
        finally:
            uow.close()

    def test_opposite_transfers_both_finish(self, file_db):
        """W1 -> W2 and W2 -> W1 loops in parallel complete and conserve the total"""
        Session, ids = file_db
        uow = UnitOfWork(Session())
        try:
            inventory = InventoryService(uow)
            inventory.receipt(ids["m"], ids["w1"], 50)
            inventory.receipt(ids["m"], ids["w2"], 50)
        finally:
            uow.close()

        def loop(source, destination):
            def job(inventory):
                for _ in range(20):
                    inventory.transfer(ids["m"], ids[source], ids[destination], 1)
                return True
            return job

        successes, failures, errors = _run_threads(Session, [loop("w1", "w2"), loop("w2", "w1")])

        assert errors == []
        assert failures == []
        assert successes == [True, True]

        uow = UnitOfWork(Session())
        try:
            inventory = InventoryService(uow)
            assert inventory.ledger.quantity(ids["m"], ids["w1"]) == Decimal("50")
            assert inventory.ledger.quantity(ids["m"], ids["w2"]) == Decimal("50")
            assert inventory.reconcile() == []
        finally:
            uow.close()
