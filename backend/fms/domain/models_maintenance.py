"""
Maintenance Domain Models
=========================

Request -> Plan -> Work. Status columns hold the values of
RequestStatus / PlanStatus / WorkStatus; legal changes are defined in
domain/lifecycle.py.

equipment_id, requester_id and assigned_to_id point at records owned by
other modules and are kept as plain integers.
"""
from decimal import Decimal
from sqlalchemy import Integer, String, ForeignKey, Numeric, Date, DateTime, Text
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime, date
from ..db import Base
from .enums import RequestStatus, PlanStatus, WorkStatus, Priority


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    equipment_id: Mapped[int] = mapped_column(Integer, index=True)
    requester_id: Mapped[int] = mapped_column(Integer, index=True)
    type: Mapped[str] = mapped_column(String(20), index=True)  # MaintenanceType
    priority: Mapped[str] = mapped_column(String(10), default=Priority.MEDIUM.value, index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    desired_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    requested_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.PENDING.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    plans = relationship("MaintenancePlan", back_populates="request")


class MaintenancePlan(Base):
    __tablename__ = "maintenance_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    request_id: Mapped[int | None] = mapped_column(ForeignKey("maintenance_requests.id"), nullable=True, index=True)
    equipment_id: Mapped[int] = mapped_column(Integer, index=True)
    type: Mapped[str] = mapped_column(String(20), index=True)  # MaintenanceType
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    planned_start_date: Mapped[date] = mapped_column(Date, index=True)
    planned_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    estimated_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    estimated_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=PlanStatus.DRAFT.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    request = relationship("MaintenanceRequest", back_populates="plans")
    materials = relationship("MaintenancePlanMaterial", back_populates="plan", cascade="all, delete-orphan")
    works = relationship("MaintenanceWork", back_populates="plan")


class MaintenancePlanMaterial(Base):
    """Material planned for a maintenance plan, and how much was actually used"""
    __tablename__ = "maintenance_plan_materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("maintenance_plans.id", ondelete="CASCADE"), index=True)
    material_id: Mapped[int] = mapped_column(ForeignKey("materials.id"), index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4))
    used_quantity: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)

    plan = relationship("MaintenancePlan", back_populates="materials")
    material = relationship("Material")


class MaintenanceWork(Base):
    __tablename__ = "maintenance_works"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    work_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("maintenance_plans.id"), index=True)
    assigned_to_id: Mapped[int] = mapped_column(Integer, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=WorkStatus.ASSIGNED.value, index=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    work_report: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    plan = relationship("MaintenancePlan", back_populates="works")
