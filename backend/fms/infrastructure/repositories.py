from sqlalchemy.orm import Session
from ..domain.models import Material, Warehouse
from ..domain.models_maintenance import MaintenanceRequest, MaintenancePlan, MaintenanceWork

class MaterialRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, m: Material): self.db.add(m); return m
    def get(self, id:int): return self.db.get(Material, id)
    def by_code(self, code:str):
        return self.db.query(Material).filter(Material.code==code).first()

class WarehouseRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, w: Warehouse): self.db.add(w); return w
    def get(self, id:int): return self.db.get(Warehouse, id)
    def get_active(self, id:int):
        return self.db.query(Warehouse).filter(Warehouse.id==id, Warehouse.is_active==True).first()
    def by_code(self, code:str):
        return self.db.query(Warehouse).filter(Warehouse.code==code).first()

class RequestRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, r: MaintenanceRequest): self.db.add(r); self.db.flush(); return r
    def get(self, id:int): return self.db.get(MaintenanceRequest, id)
    def get_for_update(self, id:int):
        return self.db.query(MaintenanceRequest).filter(MaintenanceRequest.id==id).with_for_update().first()
    def delete(self, r: MaintenanceRequest): self.db.delete(r); self.db.flush()

class PlanRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, p: MaintenancePlan): self.db.add(p); self.db.flush(); return p
    def get(self, id:int): return self.db.get(MaintenancePlan, id)
    def get_for_update(self, id:int):
        return self.db.query(MaintenancePlan).filter(MaintenancePlan.id==id).with_for_update().first()
    def by_request(self, request_id:int):
        return self.db.query(MaintenancePlan).filter(MaintenancePlan.request_id==request_id).order_by(MaintenancePlan.id).all()
    def delete(self, p: MaintenancePlan): self.db.delete(p); self.db.flush()

class WorkRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, w: MaintenanceWork): self.db.add(w); self.db.flush(); return w
    def get(self, id:int): return self.db.get(MaintenanceWork, id)
    def get_for_update(self, id:int):
        return self.db.query(MaintenanceWork).filter(MaintenanceWork.id==id).with_for_update().first()
    def by_plan(self, plan_id:int):
        return self.db.query(MaintenanceWork).filter(MaintenanceWork.plan_id==plan_id).order_by(MaintenanceWork.id).all()
