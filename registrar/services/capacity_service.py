"""
Seat accounting for capacity-limited activities.

A registration holds a seat (is "active") while it is not cancelled and it is
either paid or was reserved less than RESERVATION_HOLD_MINUTES ago. Abandoned
checkouts therefore release their seat on their own.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import and_, or_, func
from sqlalchemy.exc import IntegrityError

from registrar import db
from registrar.catalog import get_catalog, normalize_activity_id
from registrar.exceptions import NotFound, ServiceError, InfrastructureError
from registrar.models.registration import Registration, ActivityLock
from registrar.models.student import Student
from registrar.utils.datetime_utils import utcnow
from registrar.utils.money import to_decimal, as_float

ACTIVITY_FULL = "Activity is full"


@dataclass
class ReservationLine:
    registration_id: int
    activity_id: str
    activity_name: str
    activity_kind: Optional[str]
    student_first_name: str
    student_last_name: str
    cost: Decimal
    donation: Decimal
    note: Optional[str]
    answer: Optional[str]
    payment_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def total_amount(self) -> Decimal:
        return self.cost + self.donation

    def to_accepted_dict(self):
        return {
            "registrationId": self.registration_id,
            "courseId": self.activity_id,
            "courseName": self.activity_name,
            "courseKind": self.activity_kind,
            "studentFirstName": self.student_first_name,
            "studentLastName": self.student_last_name,
            "cost": as_float(self.cost),
            "donation": as_float(self.donation),
            "note": self.note,
            "answer": self.answer,
            "totalAmount": as_float(self.total_amount),
        }

    def to_rejected_dict(self):
        return {
            "registrationId": self.registration_id,
            "courseId": self.activity_id,
            "courseName": self.activity_name,
            "studentFirstName": self.student_first_name,
            "studentLastName": self.student_last_name,
            "reason": self.reason,
        }


@dataclass
class ReservationResult:
    accepted: List[ReservationLine]
    rejected: List[ReservationLine]

    @property
    def total_cost(self) -> Decimal:
        return sum((line.total_amount for line in self.accepted), Decimal("0"))

    def to_dict(self):
        out = {
            "registrations": [line.to_accepted_dict() for line in self.accepted],
            "totalCost": as_float(self.total_cost),
            "count": len(self.accepted),
        }
        if self.rejected:
            out["rejected"] = [line.to_rejected_dict() for line in self.rejected]
        return out


def hold_cutoff(now=None):
    """Reservations made at or before this instant no longer hold a seat."""
    now = now or utcnow()
    minutes = int(current_app.config.get("RESERVATION_HOLD_MINUTES", 15))
    return now - timedelta(minutes=minutes)


def active_registration_filter(cutoff):
    return and_(
        Registration.cancelled_at.is_(None),
        or_(
            Registration.payment_id.isnot(None),
            and_(
                Registration.reserved_at.isnot(None),
                Registration.reserved_at > cutoff,
            ),
        ),
    )


def active_registration_counts(
    activity_ids: Iterable[str], exclude_ids: Iterable[int] = (), now=None
) -> Dict[str, int]:
    """Active seats per (lower-cased) activity id, skipping ``exclude_ids``."""
    ids = sorted({normalize_activity_id(a) for a in activity_ids if a})
    if not ids:
        return {}

    query = db.session.query(
        Registration.activity, func.count(Registration.id)
    ).filter(
        Registration.activity.in_(ids),
        active_registration_filter(hold_cutoff(now)),
    )
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        query = query.filter(Registration.id.notin_(exclude_ids))

    rows = query.group_by(Registration.activity).all()
    return {activity: int(count) for activity, count in rows}


def _load_lines(registration_ids, catalog) -> List[ReservationLine]:
    rows = (
        db.session.query(
            Registration.id,
            Registration.activity,
            Registration.cost,
            Registration.donation,
            Registration.note,
            Registration.answer,
            Registration.payment_id,
            Student.firstname,
            Student.lastname,
        )
        .join(Student, Registration.student_id == Student.id)
        .filter(Registration.id.in_(registration_ids))
        .order_by(Registration.id)
        .all()
    )

    lines = []
    for row in rows:
        activity = catalog.get(row.activity)
        lines.append(
            ReservationLine(
                registration_id=row.id,
                activity_id=row.activity,
                activity_name=activity.name if activity else row.activity,
                activity_kind=activity.kind if activity else None,
                student_first_name=row.firstname,
                student_last_name=row.lastname,
                cost=to_decimal(row.cost),
                donation=to_decimal(row.donation),
                note=row.note,
                answer=row.answer,
                payment_id=row.payment_id,
            )
        )
    return lines


def _ensure_activity_locks(activity_ids):
    """Create the per-activity lock rows that do not exist yet, then commit."""
    existing = {
        activity
        for (activity,) in db.session.query(ActivityLock.activity)
        .filter(ActivityLock.activity.in_(activity_ids))
        .all()
    }
    for activity_id in activity_ids:
        if activity_id in existing:
            continue
        try:
            with db.session.begin_nested():
                db.session.add(ActivityLock(activity=activity_id))
        except IntegrityError:
            # Another request created it first; the row is all we need
            current_app.logger.debug(
                f"[capacity] Lock row for {activity_id} created concurrently"
            )
    db.session.commit()


def supports_row_locks(session=None) -> bool:
    """True when the bound dialect honours SELECT ... FOR UPDATE."""
    session = session or db.session
    bind = session.get_bind()
    return bind is not None and bind.dialect.name in ("postgresql", "mysql")


def _lock_activities(activity_ids):
    """
    Take the lock rows before anything else in the reservation transaction.

    Must be the first statement of that transaction so that the seat count
    that follows reads data committed by the previous holder. PostgreSQL and
    MySQL use SELECT ... FOR UPDATE in a stable order to avoid deadlocks.
    Other dialects get a no-op UPDATE of the same rows: on SQLite a write is
    what acquires the database writer lock, a read does not.
    """
    if supports_row_locks():
        db.session.execute(
            db.select(ActivityLock.activity)
            .where(ActivityLock.activity.in_(activity_ids))
            .order_by(ActivityLock.activity)
            .with_for_update()
        ).all()
        return

    db.session.query(ActivityLock).filter(
        ActivityLock.activity.in_(activity_ids)
    ).update({ActivityLock.created_at: ActivityLock.created_at},
             synchronize_session=False)


def partition_by_capacity(lines, counts, catalog):
    """Split lines into (accepted, rejected), keeping their order."""
    accepted, rejected = [], []
    spots_left = {}

    for line in lines:
        activity = catalog.get(line.activity_id)
        size_max = activity.size_max if activity else None
        if size_max is None:
            accepted.append(line)
            continue

        if line.activity_id not in spots_left:
            spots_left[line.activity_id] = size_max - counts.get(line.activity_id, 0)

        if spots_left[line.activity_id] > 0:
            spots_left[line.activity_id] -= 1
            accepted.append(line)
        else:
            line.reason = ACTIVITY_FULL
            rejected.append(line)

    return accepted, rejected


def reserve_registrations(registration_ids, now=None) -> ReservationResult:
    """
    Provisionally reserve seats for the registrations about to be paid.

    Rows beyond an activity's remaining capacity are rejected rather than
    failing the call; an empty accepted list is a valid outcome.
    """
    catalog = get_catalog()
    now = now or utcnow()
    requested = list(dict.fromkeys(int(r) for r in registration_ids))

    try:
        lines = _load_lines(requested, catalog)
        if not lines:
            raise NotFound("No registrations found")

        activity_ids = sorted({line.activity_id for line in lines})
        _ensure_activity_locks(activity_ids)

        # Reservation transaction: lock, count, hold, commit
        _lock_activities(activity_ids)
        counts = active_registration_counts(
            activity_ids,
            exclude_ids=[line.registration_id for line in lines],
            now=now,
        )
        accepted, rejected = partition_by_capacity(lines, counts, catalog)

        to_hold = [line.registration_id for line in accepted if line.payment_id is None]
        if to_hold:
            db.session.query(Registration).filter(
                Registration.id.in_(to_hold),
                Registration.payment_id.is_(None),
            ).update({Registration.reserved_at: now}, synchronize_session=False)

        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[capacity] Failed to reserve registrations")
        raise InfrastructureError("Failed to fetch registration details")

    if rejected:
        current_app.logger.info(
            f"[capacity] Rejected full registrations: "
            f"{[line.registration_id for line in rejected]}"
        )
    return ReservationResult(accepted=accepted, rejected=rejected)


def activity_status(activity_ids, now=None):
    """Public seat summary for each requested activity id."""
    catalog = get_catalog()
    counts = active_registration_counts(activity_ids, now=now)

    statuses = []
    for activity_id in activity_ids:
        key = normalize_activity_id(activity_id)
        activity = catalog.get(key)
        registered = counts.get(key, 0)
        size_max = activity.size_max if activity else None

        statuses.append({
            "activityId": activity_id,
            "registeredCount": registered,
            "sizeMax": size_max,
            "isFull": size_max is not None and registered >= size_max,
            "spotsRemaining": max(0, size_max - registered) if size_max is not None else None,
            "kind": activity.kind if activity else None,
        })
    return statuses
