"""
Stock ledger: quantity on hand per (material, warehouse).

Every mutation is a single UPDATE whose WHERE clause carries the rule
(quantity >= amount for decrements), so a concurrent writer cannot slip in
between the check and the write. The ledger never commits; callers run it
inside UnitOfWork.atomic().
"""
import logging
from decimal import Decimal
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import Numeric, select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..domain.errors import InvalidQuantityError, InsufficientStockError, ConflictRetryExceededError
from ..domain.models import Material, Warehouse
from ..domain.models_inventory import MaterialStock

logger = logging.getLogger(__name__)

QUANTITY_STEP = Decimal('0.0001')
INSERT_RETRIES = 3


def to_quantity(value) -> Decimal:
    """Quantize to the 4 decimals stored by Numeric(14, 4)"""
    return Decimal(str(value)).quantize(QUANTITY_STEP)


def _rounded(expr):
    """SQL round to 4 decimals; SQLite keeps NUMERIC as REAL, so arithmetic must be re-rounded"""
    return func.round(expr, 4, type_=Numeric(14, 4))


class StockLedger:

    def __init__(self, db: Session):
        self.db = db

    # ===== READ =====

    def _pair(self, material_id: int, warehouse_id: int):
        return (
            select(MaterialStock)
            .where(MaterialStock.material_id == material_id, MaterialStock.warehouse_id == warehouse_id)
            .options(joinedload(MaterialStock.material), joinedload(MaterialStock.warehouse))
            .execution_options(populate_existing=True)
        )

    def get(self, material_id: int, warehouse_id: int) -> Optional[MaterialStock]:
        """Stock row for the pair, or None (quantity is implicitly zero)."""
        return self.db.execute(self._pair(material_id, warehouse_id)).unique().scalar_one_or_none()

    def get_for_update(self, material_id: int, warehouse_id: int) -> Optional[MaterialStock]:
        """Same as get(), holding a row lock until the transaction ends."""
        stmt = self._pair(material_id, warehouse_id).with_for_update(of=MaterialStock)
        return self.db.execute(stmt).unique().scalar_one_or_none()

    def quantity(self, material_id: int, warehouse_id: int) -> Decimal:
        stock = self.get(material_id, warehouse_id)
        return to_quantity(stock.quantity) if stock else to_quantity(0)

    def lock_pairs(self, material_id: int, warehouse_ids: Iterable[int]) -> List[Optional[MaterialStock]]:
        """
        Lock the existing rows of several warehouses, always in ascending
        warehouse id order so two opposite transfers cannot deadlock.
        """
        return [self.get_for_update(material_id, wid) for wid in sorted(set(warehouse_ids))]

    def list(
        self,
        warehouse_id: Optional[int] = None,
        material_id: Optional[int] = None,
        low_stock: bool = False,
    ) -> List[MaterialStock]:
        """Rows with quantity > 0, ordered by warehouse name then material name."""
        stmt = (
            select(MaterialStock)
            .join(MaterialStock.warehouse)
            .join(MaterialStock.material)
            .options(joinedload(MaterialStock.material), joinedload(MaterialStock.warehouse))
            .where(MaterialStock.quantity > 0)
        )
        if warehouse_id is not None:
            stmt = stmt.where(MaterialStock.warehouse_id == warehouse_id)
        if material_id is not None:
            stmt = stmt.where(MaterialStock.material_id == material_id)
        if low_stock:
            stmt = stmt.where(Material.reorder_point > 0, MaterialStock.quantity <= Material.reorder_point)
        stmt = stmt.order_by(Warehouse.name, Material.name)
        return list(self.db.execute(stmt).unique().scalars().all())

    # ===== MUTATIONS =====

    def upsert_increment(self, material_id: int, warehouse_id: int, delta) -> MaterialStock:
        """Add delta (>= 0) to the pair, creating the row when absent."""
        delta = to_quantity(delta)
        if delta < 0:
            raise InvalidQuantityError(f"Increment must not be negative: {delta}")

        for _ in range(INSERT_RETRIES):
            if self._add(material_id, warehouse_id, delta):
                return self.get(material_id, warehouse_id)
            if self._insert(material_id, warehouse_id, delta):
                return self.get(material_id, warehouse_id)
            logger.warning("Stock row (%s, %s) created concurrently, retrying", material_id, warehouse_id)

        raise ConflictRetryExceededError(
            f"Stock row ({material_id}, {warehouse_id}) could not be updated after {INSERT_RETRIES} attempts"
        )

    def decrement(self, material_id: int, warehouse_id: int, amount) -> MaterialStock:
        """
        Subtract amount from an existing row.

        Raises:
            InsufficientStockError: no row, or quantity < amount at the time of the UPDATE
        """
        amount = to_quantity(amount)
        if amount <= 0:
            raise InvalidQuantityError(f"Quantity must be greater than 0: {amount}")

        result = self.db.execute(
            update(MaterialStock)
            .where(
                MaterialStock.material_id == material_id,
                MaterialStock.warehouse_id == warehouse_id,
                _rounded(MaterialStock.quantity) >= amount,
            )
            .values(quantity=_rounded(MaterialStock.quantity - amount), updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientStockError(self.quantity(material_id, warehouse_id), amount)
        return self.get(material_id, warehouse_id)

    def set_absolute(self, material_id: int, warehouse_id: int, new_quantity) -> Tuple[Decimal, MaterialStock]:
        """
        Overwrite the quantity (adjustments only). new_quantity must be >= 0.

        Returns:
            (quantity before the overwrite, resulting row). A row created
            concurrently between the lookup and the insert is locked and
            overwritten, never added to.
        """
        new_quantity = to_quantity(new_quantity)
        if new_quantity < 0:
            raise InvalidQuantityError(f"Quantity cannot be negative: {new_quantity}")

        for _ in range(INSERT_RETRIES):
            current = self.get_for_update(material_id, warehouse_id)
            if current is not None:
                before = to_quantity(current.quantity)
                self.db.execute(
                    update(MaterialStock)
                    .where(MaterialStock.material_id == material_id, MaterialStock.warehouse_id == warehouse_id)
                    .values(quantity=new_quantity, updated_at=datetime.now())
                    .execution_options(synchronize_session=False)
                )
                return before, self.get(material_id, warehouse_id)
            if self._insert(material_id, warehouse_id, new_quantity):
                return to_quantity(0), self.get(material_id, warehouse_id)
            logger.warning("Stock row (%s, %s) created concurrently, retrying", material_id, warehouse_id)

        raise ConflictRetryExceededError(
            f"Stock row ({material_id}, {warehouse_id}) could not be set after {INSERT_RETRIES} attempts"
        )

    def _add(self, material_id: int, warehouse_id: int, delta: Decimal) -> bool:
        result = self.db.execute(
            update(MaterialStock)
            .where(MaterialStock.material_id == material_id, MaterialStock.warehouse_id == warehouse_id)
            .values(quantity=_rounded(MaterialStock.quantity + delta), updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def _insert(self, material_id: int, warehouse_id: int, quantity: Decimal) -> bool:
        try:
            with self.db.begin_nested():
                self.db.add(MaterialStock(
                    material_id=material_id,
                    warehouse_id=warehouse_id,
                    quantity=quantity,
                    updated_at=datetime.now(),
                ))
            return True
        except IntegrityError:
            return False
