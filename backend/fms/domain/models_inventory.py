"""
Inventory Domain Models
=======================

- MaterialStock: quantity on hand per (material, warehouse), the ledger
- MaterialTransaction: immutable movement log (receipt, issue, transfer, adjustment)
- DocumentSequence: one counter row per document-number prefix
"""
from decimal import Decimal
from sqlalchemy import Integer, String, ForeignKey, Numeric, DateTime, Text, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime
from ..db import Base


class MaterialStock(Base):
    """
    Stock per Material and Warehouse
    Rows are created by the first movement into the pair and never deleted by the core.
    """
    __tablename__ = "material_stocks"
    __table_args__ = (
        UniqueConstraint('material_id', 'warehouse_id', name='uq_stock_material_warehouse'),
        CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    material_id: Mapped[int] = mapped_column(ForeignKey("materials.id"), index=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    material = relationship("Material", back_populates="stocks")
    warehouse = relationship("Warehouse", back_populates="stocks")


class MaterialTransaction(Base):
    """
    Movement record (append-only)
    Quantity is always positive; direction comes from from/to warehouse.
    """
    __tablename__ = "material_transactions"
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_transaction_quantity_non_negative'),
        Index('ix_transaction_material_date', 'material_id', 'transaction_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    transaction_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    transaction_type: Mapped[str] = mapped_column(String(20), index=True)  # MovementType
    material_id: Mapped[int] = mapped_column(ForeignKey("materials.id"), index=True)
    from_warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True, index=True)
    to_warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True, index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4))
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transaction_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    material = relationship("Material")
    from_warehouse = relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = relationship("Warehouse", foreign_keys=[to_warehouse_id])


class DocumentSequence(Base):
    """Last issued value per document-number prefix (e.g. TXN20250115, REQ202501)"""
    __tablename__ = "document_sequences"

    prefix: Mapped[str] = mapped_column(String(30), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
