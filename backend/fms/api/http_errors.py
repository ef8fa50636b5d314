from fastapi import HTTPException

from ..domain.errors import FmsError, NotFoundError, SequenceError


def raise_http(e: FmsError):
    """Translate a domain error to its HTTP status: 404 missing, 409 numbering conflict, 400 business rule."""
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SequenceError):
        raise HTTPException(status_code=409, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))
