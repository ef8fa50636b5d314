from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ...dependencies import get_db

router = APIRouter(prefix="/health", tags=["health"])

@router.get("/ready")
def ready():
    return {"status": "ok"}

@router.get("/db")
def database(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e.__class__.__name__}")
    return {"status": "ok"}
