# Overview: Service-layer operations for document numbering; encapsulates sequence allocation.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import run_with_retry

STOCK_SEQUENCE = "STOCK"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(*, document_type: str, prefix: str, pad: int = 4) -> str:
    """
    Atomically allocate the next document number for a sequence.

    Uses an UPDATE ... SET next_number = next_number + 1 so the row lock
    serializes concurrent allocators. Call it before adding other pending
    objects to the session: a lost race on creating the sequence row rolls
    the session back.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    def _current() -> int:
        db.session.flush()
        return (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )

    def _op() -> str:
        result = db.session.execute(stmt)
        if result.rowcount:
            next_num = _current() - 1
        else:
            seq = DocumentSequence(document_type=document_type, next_number=2)
            db.session.add(seq)
            try:
                db.session.flush()
                next_num = 1
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                next_num = _current() - 1

        return f"{prefix}-{next_num:0{pad}d}"

    return run_with_retry(_op)


def next_stock_code() -> str:
    """Next shop-facing stock code, e.g. HS-0007."""
    prefix = current_app.config.get("STOCK_CODE_PREFIX", "HS")
    return next_document_number(document_type=STOCK_SEQUENCE, prefix=prefix)
