"""
Inventory Service
=================

The four stock movements. Each one:
- validates its input before touching any row
- runs as one atomic unit (ledger change(s) + one log record + document number)
- returns the resulting MaterialStock with material and warehouse loaded

RULES:
- Quantity on hand never goes below zero
- Every ledger change has exactly one MaterialTransaction behind it
- Transfers lock both rows in ascending warehouse id order
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from sqlalchemy import select

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import MovementType, DocumentKind
from ..domain.errors import (
    NotFoundError,
    InvalidQuantityError,
    InsufficientStockError,
    SameWarehouseError,
    StockValidationError,
)
from ..domain.models import Material, Warehouse
from ..domain.models_inventory import MaterialStock, MaterialTransaction
from .services_sequence import SequenceGenerator
from .services_stock_ledger import StockLedger, to_quantity
from .services_movement_log import MovementLog, TransactionFilter, TransactionPage

logger = logging.getLogger(__name__)


def _display(value: Decimal) -> str:
    """70.0000 -> '70', 12.5000 -> '12.5'"""
    return format(value.normalize(), "f")


class InventoryService:
    """
    Stock movements on top of StockLedger, MovementLog and SequenceGenerator.

    All three share the unit of work's session, so a failure anywhere rolls
    back the ledger, the log record and the consumed document number together.
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = datetime.now):
        self.uow = uow
        self.clock = clock
        self.ledger = StockLedger(uow.db)
        self.log = MovementLog(uow.db)
        self.sequence = SequenceGenerator(uow.db)

    # ===== VALIDATION =====

    def _quantity(self, value, allow_zero: bool = False) -> Decimal:
        try:
            quantity = to_quantity(value)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidQuantityError(f"Invalid quantity: {value}") from None
        if quantity < 0:
            raise InvalidQuantityError(f"Quantity cannot be negative: {quantity}")
        if quantity == 0 and not allow_zero:
            raise InvalidQuantityError(f"Quantity must be greater than 0: {quantity}")
        return quantity

    def _material(self, material_id: int) -> Material:
        material = self.uow.materials.get(material_id)
        if not material:
            raise NotFoundError("Material", material_id)
        return material

    def _warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.uow.warehouses.get_active(warehouse_id)
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    def _record(self, movement_type: MovementType, material_id: int, quantity: Decimal, **fields) -> MaterialTransaction:
        now = self.clock()
        record = MaterialTransaction(
            transaction_number=self.sequence.next_for(DocumentKind.TRANSACTION, now),
            transaction_type=movement_type.value,
            material_id=material_id,
            quantity=quantity,
            transaction_date=now,
            **fields,
        )
        return self.log.append(record)

    # ===== MOVEMENTS =====

    def receipt(
        self,
        material_id: int,
        warehouse_id: int,
        quantity,
        unit_price=None,
        remarks: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> MaterialStock:
        """Stock in: increments (or creates) the pair and logs a RECEIPT to the warehouse."""
        quantity = self._quantity(quantity)
        self._material(material_id)
        self._warehouse(warehouse_id)

        with self.uow.atomic():
            self.ledger.upsert_increment(material_id, warehouse_id, quantity)
            record = self._record(
                MovementType.RECEIPT, material_id, quantity,
                to_warehouse_id=warehouse_id,
                unit_price=unit_price,
                remarks=remarks,
                reference_type=reference_type,
                reference_id=str(reference_id) if reference_id is not None else None,
            )

        logger.info("Receipt %s: material=%s warehouse=%s qty=%s", record.transaction_number, material_id, warehouse_id, quantity)
        return self.ledger.get(material_id, warehouse_id)

    def issue(
        self,
        material_id: int,
        warehouse_id: int,
        quantity,
        remarks: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> MaterialStock:
        """Stock out: decrements the pair and logs an ISSUE from the warehouse."""
        quantity = self._quantity(quantity)
        self._material(material_id)
        self._warehouse(warehouse_id)

        available = self.ledger.quantity(material_id, warehouse_id)
        if available < quantity:
            raise InsufficientStockError(available, quantity)

        with self.uow.atomic():
            # A concurrent issue between the check above and here still fails inside decrement()
            self.ledger.decrement(material_id, warehouse_id, quantity)
            record = self._record(
                MovementType.ISSUE, material_id, quantity,
                from_warehouse_id=warehouse_id,
                remarks=remarks,
                reference_type=reference_type,
                reference_id=str(reference_id) if reference_id is not None else None,
            )

        logger.info("Issue %s: material=%s warehouse=%s qty=%s", record.transaction_number, material_id, warehouse_id, quantity)
        return self.ledger.get(material_id, warehouse_id)

    def transfer(
        self,
        material_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        quantity,
        remarks: Optional[str] = None,
    ) -> MaterialStock:
        """Moves stock between warehouses. Returns the destination row."""
        quantity = self._quantity(quantity)
        if from_warehouse_id == to_warehouse_id:
            raise SameWarehouseError("Source and destination warehouse must be different")
        self._material(material_id)
        self._warehouse(from_warehouse_id)
        self._warehouse(to_warehouse_id)

        available = self.ledger.quantity(material_id, from_warehouse_id)
        if available < quantity:
            raise InsufficientStockError(available, quantity)

        with self.uow.atomic():
            self.ledger.lock_pairs(material_id, [from_warehouse_id, to_warehouse_id])
            self.ledger.decrement(material_id, from_warehouse_id, quantity)
            self.ledger.upsert_increment(material_id, to_warehouse_id, quantity)
            record = self._record(
                MovementType.TRANSFER, material_id, quantity,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                remarks=remarks,
            )

        logger.info(
            "Transfer %s: material=%s %s -> %s qty=%s",
            record.transaction_number, material_id, from_warehouse_id, to_warehouse_id, quantity,
        )
        return self.ledger.get(material_id, to_warehouse_id)

    def adjust(self, material_id: int, warehouse_id: int, new_quantity, remarks: str) -> MaterialStock:
        """
        Sets the counted quantity.

        The log record goes out of the warehouse (from) when the count is lower
        than the ledger and into it (to) otherwise; its quantity is |delta|.
        """
        new_quantity = self._quantity(new_quantity, allow_zero=True)
        if not remarks or not remarks.strip():
            raise StockValidationError("Remarks are required for adjustments")
        self._material(material_id)
        self._warehouse(warehouse_id)

        with self.uow.atomic():
            before, _ = self.ledger.set_absolute(material_id, warehouse_id, new_quantity)
            delta = new_quantity - before

            side = {"from_warehouse_id": warehouse_id} if delta < 0 else {"to_warehouse_id": warehouse_id}
            record = self._record(
                MovementType.ADJUSTMENT, material_id, abs(delta),
                remarks=f"Adjustment: {_display(before)} → {_display(new_quantity)}. {remarks.strip()}",
                **side,
            )

        logger.info(
            "Adjustment %s: material=%s warehouse=%s %s -> %s",
            record.transaction_number, material_id, warehouse_id, before, new_quantity,
        )
        return self.ledger.get(material_id, warehouse_id)

    # ===== QUERIES =====

    def get_stock(self, material_id: int, warehouse_id: int) -> MaterialStock:
        stock = self.ledger.get(material_id, warehouse_id)
        if not stock:
            raise NotFoundError("Stock", f"{material_id}/{warehouse_id}")
        return stock

    def list_stocks(
        self,
        warehouse_id: Optional[int] = None,
        material_id: Optional[int] = None,
        low_stock: bool = False,
    ) -> List[MaterialStock]:
        return self.ledger.list(warehouse_id=warehouse_id, material_id=material_id, low_stock=low_stock)

    def list_transactions(self, criteria: TransactionFilter = None) -> TransactionPage:
        return self.log.query(criteria)

    def reconcile(self, material_id: Optional[int] = None) -> List[dict]:
        """
        Compare every ledger row with the replay of its movements.

        Returns:
            One dict per mismatching pair {material_id, warehouse_id, ledger, log}; empty when consistent
        """
        pairs = set()
        stock_stmt = select(MaterialStock.material_id, MaterialStock.warehouse_id)
        if material_id is not None:
            stock_stmt = stock_stmt.where(MaterialStock.material_id == material_id)
        pairs.update((m, w) for m, w in self.uow.db.execute(stock_stmt).all())

        for column in (MaterialTransaction.from_warehouse_id, MaterialTransaction.to_warehouse_id):
            log_stmt = select(MaterialTransaction.material_id, column).where(column.is_not(None)).distinct()
            if material_id is not None:
                log_stmt = log_stmt.where(MaterialTransaction.material_id == material_id)
            pairs.update((m, w) for m, w in self.uow.db.execute(log_stmt).all())

        discrepancies = []
        for mid, wid in sorted(pairs):
            ledger_qty = self.ledger.quantity(mid, wid)
            log_qty = self.log.balance(mid, wid)
            if ledger_qty != log_qty:
                discrepancies.append({
                    "material_id": mid,
                    "warehouse_id": wid,
                    "ledger": ledger_qty,
                    "log": log_qty,
                })

        if discrepancies:
            logger.warning("Stock reconciliation found %s discrepancies", len(discrepancies))
        return discrepancies
