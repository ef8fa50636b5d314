"""
Tests for the movement log (append, query, replay)
"""
import pytest
from datetime import datetime
from decimal import Decimal

from fms.config import settings
from fms.domain.enums import MovementType
from fms.domain.models_inventory import MaterialTransaction
from fms.application.services_movement_log import MovementLog, TransactionFilter


@pytest.fixture
def log(db_session, materials, warehouses):
    return MovementLog(db_session)


def _record(number, material, quantity, kind, to=None, frm=None, when=None):
    return MaterialTransaction(
        transaction_number=number,
        transaction_type=kind.value,
        material_id=material.id,
        from_warehouse_id=frm.id if frm else None,
        to_warehouse_id=to.id if to else None,
        quantity=Decimal(str(quantity)),
        transaction_date=when or datetime(2025, 1, 15, 8, 0),
    )


class TestMovementLogQuery:

    def test_append_assigns_id(self, log, materials, warehouses):
        record = log.append(_record("TXN202501150001", materials[0], 5, MovementType.RECEIPT, to=warehouses[0]))
        assert record.id is not None

    def test_newest_first_with_id_tiebreak(self, log, materials, warehouses):
        same_time = datetime(2025, 1, 15, 9, 0)
        log.append(_record("TXN202501150001", materials[0], 1, MovementType.RECEIPT, to=warehouses[0], when=same_time))
        log.append(_record("TXN202501150002", materials[0], 2, MovementType.RECEIPT, to=warehouses[0], when=same_time))
        log.append(_record("TXN202501150003", materials[0], 3, MovementType.RECEIPT, to=warehouses[0],
                           when=datetime(2025, 1, 15, 8, 0)))

        page = log.query()
        assert [t.transaction_number for t in page.items] == [
            "TXN202501150002", "TXN202501150001", "TXN202501150003",
        ]
        assert page.total == 3
        assert page.page == 1

    def test_warehouse_filter_matches_either_side(self, log, materials, warehouses):
        w1, w2, _ = warehouses
        log.append(_record("TXN202501150001", materials[0], 4, MovementType.TRANSFER, frm=w1, to=w2))
        log.append(_record("TXN202501150002", materials[0], 4, MovementType.RECEIPT, to=w1))

        assert log.query(TransactionFilter(warehouse_id=w1.id)).total == 2
        assert log.query(TransactionFilter(warehouse_id=w2.id)).total == 1

    def test_date_range_is_inclusive(self, log, materials, warehouses):
        for day in (14, 15, 16):
            log.append(_record(f"TXN202501{day}0001", materials[0], 1, MovementType.RECEIPT, to=warehouses[0],
                               when=datetime(2025, 1, day, 12, 0)))
        page = log.query(TransactionFilter(
            start_date=datetime(2025, 1, 15, 12, 0), end_date=datetime(2025, 1, 16, 12, 0),
        ))
        assert page.total == 2

    def test_skip_take_reports_page(self, log, materials, warehouses):
        for i in range(5):
            log.append(_record(f"TXN20250115000{i + 1}", materials[0], i + 1, MovementType.RECEIPT, to=warehouses[0]))
        page = log.query(TransactionFilter(skip=2, take=2))
        assert len(page.items) == 2
        assert page.page == 2
        assert page.page_size == 2
        assert page.total == 5

    def test_page_size_is_clamped(self):
        assert TransactionFilter(take=10 ** 6).page_size == settings.max_page_size
        assert TransactionFilter().page_size == settings.default_page_size


class TestMovementLogReplay:

    def test_balance_signs_by_side(self, log, materials, warehouses):
        w1, w2, _ = warehouses
        m = materials[0]
        log.append(_record("TXN202501150001", m, 100, MovementType.RECEIPT, to=w1))
        log.append(_record("TXN202501150002", m, 30, MovementType.ISSUE, frm=w1))
        log.append(_record("TXN202501150003", m, 20, MovementType.TRANSFER, frm=w1, to=w2))

        assert log.balance(m.id, w1.id) == Decimal("50.0000")
        assert log.balance(m.id, w2.id) == Decimal("20.0000")

    def test_balance_of_untouched_pair_is_zero(self, log, materials, warehouses):
        assert log.balance(materials[1].id, warehouses[1].id) == Decimal("0")

    def test_history_oldest_first_for_pair(self, log, materials, warehouses):
        w1, w2, _ = warehouses
        m = materials[0]
        log.append(_record("TXN202501150002", m, 1, MovementType.ISSUE, frm=w1, when=datetime(2025, 1, 15, 10, 0)))
        log.append(_record("TXN202501150001", m, 9, MovementType.RECEIPT, to=w1, when=datetime(2025, 1, 15, 9, 0)))
        log.append(_record("TXN202501150003", m, 5, MovementType.RECEIPT, to=w2))

        assert [t.transaction_number for t in log.history(m.id, w1.id)] == ["TXN202501150001", "TXN202501150002"]
