"""
Document number generation.

Format: [Prefix][Time window][Sequence]
Examples:
    TXN202501150001 -> stock transaction, daily window
    REQ2025010001   -> maintenance request, monthly window
    PLN2025010001   -> maintenance plan, monthly window
    WRK2025010001   -> maintenance work, monthly window

Each prefix (code + window) owns one row in document_sequences. The row is
incremented with a single UPDATE inside the caller's transaction, so the
number and the document that uses it commit or roll back together, and a
concurrent caller waits on the row lock instead of reading a stale maximum.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.enums import DocumentKind
from ..domain.errors import SequenceExhaustedError, ConflictRetryExceededError
from ..domain.models_inventory import DocumentSequence

logger = logging.getLogger(__name__)


# Document kind -> (code, strftime window)
DOCUMENT_PREFIXES = {
    DocumentKind.TRANSACTION: ("TXN", "%Y%m%d"),
    DocumentKind.REQUEST: ("REQ", "%Y%m"),
    DocumentKind.PLAN: ("PLN", "%Y%m"),
    DocumentKind.WORK: ("WRK", "%Y%m"),
}


def document_prefix(kind: DocumentKind, moment: datetime) -> str:
    """
    Build the prefix for a document kind at a given moment.

    Args:
        kind: Document kind (TRANSACTION, REQUEST, PLAN, WORK)
        moment: Date used for the time window

    Returns:
        Prefix such as "TXN20250115" or "REQ202501"
    """
    code, window = DOCUMENT_PREFIXES[DocumentKind(kind)]
    return f"{code}{moment.strftime(window)}"


def parse_document_number(number: str, width: int = None) -> Optional[dict]:
    """
    Split a document number into its components.

    Args:
        number: Document number (e.g. "TXN202501150012")
        width: Digits of the sequence part

    Returns:
        Dict with {kind, prefix, window, sequence} or None if the format is invalid
    """
    if not number:
        return None
    width = width or settings.sequence_width

    for kind, (code, window) in DOCUMENT_PREFIXES.items():
        if not number.startswith(code):
            continue
        window_len = len(datetime(2000, 1, 1).strftime(window))
        body = number[len(code):]
        if len(body) != window_len + width:
            return None
        stamp, sequence = body[:window_len], body[window_len:]
        try:
            datetime.strptime(stamp, window)
            value = int(sequence)
        except ValueError:
            return None
        return {
            "kind": kind,
            "prefix": f"{code}{stamp}",
            "window": stamp,
            "sequence": value,
        }
    return None


class SequenceGenerator:
    """
    Counter-row sequence per prefix.

    Works on the caller's session and never commits.
    """

    def __init__(self, db: Session, width: int = None, max_retries: int = None):
        self.db = db
        self.width = width or settings.sequence_width
        self.max_retries = max_retries or settings.sequence_max_retries
        self.max_value = 10 ** self.width - 1

    def next(self, prefix: str) -> str:
        """
        Return the next unused number for a prefix.

        Raises:
            SequenceExhaustedError: the counter passed the largest value the width can hold
            ConflictRetryExceededError: concurrent creators kept winning the race for the counter row
        """
        for attempt in range(1, self.max_retries + 1):
            value = self._increment(prefix)
            if value is None:
                if not self._create(prefix):
                    logger.warning("Sequence row %s created concurrently, retrying (%s/%s)", prefix, attempt, self.max_retries)
                    continue
                value = 1

            if value > self.max_value:
                raise SequenceExhaustedError(
                    f"Sequence {prefix} exhausted: {value} does not fit in {self.width} digits"
                )
            return f"{prefix}{value:0{self.width}d}"

        raise ConflictRetryExceededError(
            f"Could not obtain a number for {prefix} after {self.max_retries} attempts"
        )

    def next_for(self, kind: DocumentKind, moment: datetime) -> str:
        return self.next(document_prefix(kind, moment))

    def current(self, prefix: str) -> int:
        """Last issued value for a prefix (0 if none was issued)."""
        value = self.db.execute(
            select(DocumentSequence.last_value).where(DocumentSequence.prefix == prefix)
        ).scalar_one_or_none()
        return value or 0

    def _increment(self, prefix: str) -> Optional[int]:
        result = self.db.execute(
            update(DocumentSequence)
            .where(DocumentSequence.prefix == prefix)
            .values(last_value=DocumentSequence.last_value + 1, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.db.execute(
            select(DocumentSequence.last_value).where(DocumentSequence.prefix == prefix)
        ).scalar_one()

    def _create(self, prefix: str) -> bool:
        """Insert the counter row already holding 1. False if another transaction created it first."""
        try:
            with self.db.begin_nested():
                self.db.add(DocumentSequence(prefix=prefix, last_value=1, updated_at=datetime.now()))
            return True
        except IntegrityError:
            return False
