"""
Movement log: append-only record of every ledger change.

There is no update or delete path. Quantities are stored positive; the sign
comes from the side the warehouse sits on (to = in, from = out).
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func, or_, case
from sqlalchemy.orm import Session, joinedload

from ..config import settings
from ..domain.enums import MovementType
from ..domain.models_inventory import MaterialTransaction


@dataclass(frozen=True)
class TransactionFilter:
    """Optional criteria for the transaction list; each set field adds one predicate."""
    material_id: Optional[int] = None
    warehouse_id: Optional[int] = None  # matches source OR destination
    transaction_type: Optional[MovementType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    skip: int = 0
    take: Optional[int] = None

    @property
    def page_size(self) -> int:
        take = self.take if self.take is not None else settings.default_page_size
        return max(1, min(take, settings.max_page_size))


@dataclass
class TransactionPage:
    items: List[MaterialTransaction] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 0


class MovementLog:

    def __init__(self, db: Session):
        self.db = db

    def append(self, record: MaterialTransaction) -> MaterialTransaction:
        """Insert a movement. Business validation has already happened."""
        self.db.add(record)
        self.db.flush()
        return record

    def _predicates(self, criteria: TransactionFilter) -> list:
        predicates = []
        if criteria.material_id is not None:
            predicates.append(MaterialTransaction.material_id == criteria.material_id)
        if criteria.warehouse_id is not None:
            predicates.append(or_(
                MaterialTransaction.from_warehouse_id == criteria.warehouse_id,
                MaterialTransaction.to_warehouse_id == criteria.warehouse_id,
            ))
        if criteria.transaction_type is not None:
            predicates.append(MaterialTransaction.transaction_type == MovementType(criteria.transaction_type).value)
        if criteria.start_date is not None:
            predicates.append(MaterialTransaction.transaction_date >= criteria.start_date)
        if criteria.end_date is not None:
            predicates.append(MaterialTransaction.transaction_date <= criteria.end_date)
        return predicates

    def query(self, criteria: TransactionFilter = None) -> TransactionPage:
        """Page of movements, newest first, plus the total count for the criteria."""
        criteria = criteria or TransactionFilter()
        predicates = self._predicates(criteria)
        take = criteria.page_size
        skip = max(0, criteria.skip)

        total = self.db.execute(
            select(func.count(MaterialTransaction.id)).where(*predicates)
        ).scalar_one()

        items = self.db.execute(
            select(MaterialTransaction)
            .where(*predicates)
            .options(
                joinedload(MaterialTransaction.material),
                joinedload(MaterialTransaction.from_warehouse),
                joinedload(MaterialTransaction.to_warehouse),
            )
            .order_by(MaterialTransaction.transaction_date.desc(), MaterialTransaction.id.desc())
            .offset(skip)
            .limit(take)
        ).unique().scalars().all()

        return TransactionPage(items=list(items), total=total, page=skip // take + 1, page_size=take)

    def history(self, material_id: int, warehouse_id: int) -> List[MaterialTransaction]:
        """Every movement touching the pair, oldest first."""
        return list(self.db.execute(
            select(MaterialTransaction)
            .where(
                MaterialTransaction.material_id == material_id,
                or_(
                    MaterialTransaction.from_warehouse_id == warehouse_id,
                    MaterialTransaction.to_warehouse_id == warehouse_id,
                ),
            )
            .order_by(MaterialTransaction.transaction_date, MaterialTransaction.id)
        ).scalars().all())

    def balance(self, material_id: int, warehouse_id: int) -> Decimal:
        """Replay of the log for the pair: sum of inbound minus sum of outbound."""
        signed = case(
            (MaterialTransaction.to_warehouse_id == warehouse_id, MaterialTransaction.quantity),
            else_=-MaterialTransaction.quantity,
        )
        value = self.db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                MaterialTransaction.material_id == material_id,
                or_(
                    MaterialTransaction.from_warehouse_id == warehouse_id,
                    MaterialTransaction.to_warehouse_id == warehouse_id,
                ),
            )
        ).scalar_one()
        return Decimal(str(value)).quantize(Decimal('0.0001'))
