from contextlib import contextmanager
from sqlalchemy.orm import Session
from ..db import SessionLocal
from .repositories import MaterialRepository, WarehouseRepository, RequestRepository, PlanRepository, WorkRepository

class UnitOfWork:
    def __init__(self, db: Session = None):
        self.db: Session = db if db is not None else SessionLocal()
        self.materials = MaterialRepository(self.db)
        self.warehouses = WarehouseRepository(self.db)
        self.requests = RequestRepository(self.db)
        self.plans = PlanRepository(self.db)
        self.works = WorkRepository(self.db)
        self._depth = 0

    def commit(self): self.db.commit()
    def rollback(self): self.db.rollback()
    def close(self): self.db.close()

    @contextmanager
    def atomic(self):
        """
        One atomic unit: commit when the outermost block exits cleanly,
        roll back on any exception. Inner blocks join the outer one.
        The session stays open.
        """
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.commit()
        except Exception:
            if self._depth == 1:
                self.rollback()
            raise
        finally:
            self._depth -= 1

