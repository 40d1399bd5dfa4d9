"""
Reminder e-mails for activities starting within REMINDER_WINDOW_DAYS.

One e-mail goes to each contact per upcoming activity, listing every student
that contact registered. A registration is marked reminded only after its
e-mail was accepted, so a failed send is retried by the next run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

from flask import current_app

from registrar import db
from registrar.catalog import get_catalog
from registrar.exceptions import InfrastructureError
from registrar.models.contact import Contact
from registrar.models.registration import Registration
from registrar.models.student import Student
from registrar.services.notification_service import get_notifier
from registrar.utils.datetime_utils import app_timezone, to_local, utcnow


@dataclass
class ReminderGroup:
    activity_id: str
    activity_name: str
    starts_at: datetime
    contact_email: str
    contact_name: str
    participants: List[str] = field(default_factory=list)
    registration_ids: List[int] = field(default_factory=list)


def upcoming_activities(catalog, now_local, window_days):
    """
    Activities whose start falls after ``now_local`` and no later than the
    end of the day ``window_days`` from now. Returns {id: aware start}.
    """
    tz = now_local.tzinfo
    horizon = (now_local + timedelta(days=window_days)).replace(
        hour=23, minute=59, second=59, microsecond=0)

    upcoming = {}
    for activity in catalog:
        if activity.start is None:
            continue
        starts_at = activity.start.replace(tzinfo=tz)
        if now_local < starts_at <= horizon:
            upcoming[activity.id] = starts_at
    return upcoming


def collect_reminder_groups(upcoming):
    catalog = get_catalog()
    rows = (
        db.session.query(
            Registration.id,
            Registration.activity,
            Student.firstname,
            Student.lastname,
            Contact.id.label("contact_id"),
            Contact.firstname.label("contact_firstname"),
            Contact.lastname.label("contact_lastname"),
            Contact.email,
        )
        .join(Student, Registration.student_id == Student.id)
        .join(Contact, Registration.contact_id == Contact.id)
        .filter(
            Registration.activity.in_(list(upcoming)),
            Registration.payment_id.isnot(None),
            Registration.cancelled_at.is_(None),
            Registration.reminded_at.is_(None),
        )
        .order_by(Registration.activity, Contact.id, Student.lastname, Student.firstname)
        .all()
    )

    groups = {}
    for row in rows:
        key = (row.activity, row.contact_id)
        group = groups.get(key)
        if group is None:
            activity = catalog.get(row.activity)
            group = groups[key] = ReminderGroup(
                activity_id=row.activity,
                activity_name=activity.name if activity else row.activity,
                starts_at=upcoming[row.activity],
                contact_email=row.email,
                contact_name=f"{row.contact_firstname} {row.contact_lastname}".strip(),
            )
        group.participants.append(f"{row.firstname} {row.lastname}".strip())
        group.registration_ids.append(row.id)
    return list(groups.values())


def send_reminders(dry_run=False, now=None):
    """Send (or, with ``dry_run``, only list) the pending reminder e-mails."""
    tz = app_timezone()
    now_local = to_local(now or utcnow(), tz)
    window_days = int(current_app.config.get("REMINDER_WINDOW_DAYS", 2))

    upcoming = upcoming_activities(get_catalog(), now_local, window_days)
    if not upcoming:
        return {
            "success": True,
            "message": f"No activities starting within {window_days} days",
            "dryRun": dry_run,
            "emailsSent": 0,
            "emailsFailed": 0,
            "details": [],
        }

    try:
        groups = collect_reminder_groups(upcoming)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[reminders] Failed to load registrations")
        raise InfrastructureError("Failed to load registrations for reminders")

    notifier = get_notifier()
    sent, failed, details = 0, 0, []

    for group in groups:
        detail = {
            "activityId": group.activity_id,
            "activityName": group.activity_name,
            "startsAt": group.starts_at.isoformat(),
            "contactEmail": group.contact_email,
            "participants": group.participants,
        }

        if dry_run:
            detail["success"] = True
            details.append(detail)
            continue

        result = notifier.send_class_reminder(
            group.contact_email, group.contact_name, group.activity_name,
            group.starts_at, group.participants)

        if result.success:
            try:
                db.session.query(Registration).filter(
                    Registration.id.in_(group.registration_ids)
                ).update({Registration.reminded_at: utcnow()},
                         synchronize_session=False)
                db.session.commit()
            except Exception:
                db.session.rollback()
                current_app.logger.exception(
                    f"[reminders] Sent but could not mark {group.registration_ids}")
                raise InfrastructureError("Failed to record sent reminders")
            sent += 1
        else:
            failed += 1
            current_app.logger.warning(
                f"[reminders] Reminder to {group.contact_email} for "
                f"{group.activity_id} failed: {result.error}")

        detail["success"] = result.success
        detail["error"] = result.error
        details.append(detail)

    current_app.logger.info(
        f"[reminders] {len(groups)} reminder(s) processed, {sent} sent, "
        f"{failed} failed, dry_run={dry_run}")
    return {
        "success": failed == 0,
        "message": f"Processed {len(groups)} reminder(s)",
        "dryRun": dry_run,
        "emailsSent": sent,
        "emailsFailed": failed,
        "details": details,
    }
