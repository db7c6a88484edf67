# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_number(document_type: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(*, document_type: str, prefix: str, pad: int = 6) -> str:
    """
    Allocate the next document number for a type (e.g. "V-000042").

    Runs inside the caller's transaction: the increment is a single
    conditional UPDATE, so it rolls back with the document it numbers and
    two concurrent callers can never receive the same value.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_number(document_type)
    else:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            # Another writer created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_number(document_type)

    return f"{prefix}-{next_num:0{pad}d}"
