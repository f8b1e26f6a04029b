"""
Status transitions for donations and cow-puja orders.

Each model declares ``TRANSITIONS`` (status -> allowed next statuses). Every
mutation goes through ``transition``: a single conditional UPDATE keyed on
the current status, so of two competing writers only one matches a row.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from seva.models.order_event import OrderEvent

logger = logging.getLogger(__name__)


class IllegalTransition(ValueError):
    """Raised when code asks for an edge the status graph does not have"""


def allowed_sources(model, target) -> set:
    """Statuses from which *target* is reachable in one step"""
    return {source for source, targets in model.TRANSITIONS.items() if target in targets}


def can_transition(model, source, target) -> bool:
    return target in model.TRANSITIONS.get(source, set())


@dataclass
class TransitionResult:
    matched: bool
    record: Optional[object] = None


def transition(
    db: Session,
    model,
    criteria: Iterable,
    target,
    event_type: str,
    by: str,
    from_statuses: Optional[Iterable] = None,
    values: Optional[dict] = None,
    note: Optional[str] = None,
) -> TransitionResult:
    """
    Move the single row matching *criteria* to *target*.

    The UPDATE only matches while the row is in one of *from_statuses*
    (default: every status with an edge to *target*). On a match the
    timeline entry is written in the same commit and the fresh row is
    returned; otherwise nothing is written and ``matched`` is False.
    """
    sources = set(from_statuses) if from_statuses is not None else allowed_sources(model, target)
    illegal = {s for s in sources if not can_transition(model, s, target)}
    if illegal:
        raise IllegalTransition(
            f"{model.__name__}: {sorted(s.value for s in illegal)} -> {target.value} is not allowed"
        )

    criteria = list(criteria)
    update_values = {model.status: target}
    for key, value in (values or {}).items():
        update_values[getattr(model, key)] = value

    rowcount = (
        db.query(model)
        .filter(*criteria, model.status.in_(sources))
        .update(update_values, synchronize_session=False)
    )
    if rowcount == 0:
        db.rollback()
        return TransitionResult(matched=False)

    record = (
        db.query(model)
        .filter(*criteria)
        .populate_existing()
        .first()
    )
    db.add(OrderEvent(provider_order_id=record.order_id, type=event_type, note=note, by=by))
    db.commit()
    db.refresh(record)

    logger.info(f"[Order] {model.__name__} {record.order_id} -> {target.value} ({event_type}, by {by})")
    return TransitionResult(matched=True, record=record)
