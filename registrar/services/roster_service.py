import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional

from flask import current_app
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from registrar import db
from registrar.catalog import get_catalog, normalize_activity_id
from registrar.exceptions import InfrastructureError, InvalidRequest
from registrar.models.contact import Contact
from registrar.models.payment import Payment
from registrar.models.registration import Registration
from registrar.models.student import Student
from registrar.services.notification_service import ClassRoster, get_notifier
from registrar.utils.datetime_utils import age_on, app_timezone, to_local, utcnow
from registrar.utils.shortcode import format_short_code

ROSTER_HEADERS = ['#', 'Student', 'Age', 'Answer', 'Note', 'Contact', 'Email',
                  'Phone', 'Confirmation']
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
DAY_CODES = {'MO': 0, 'TU': 1, 'WE': 2, 'TH': 3, 'FR': 4, 'SA': 5, 'SU': 6}


@dataclass
class RosterEntry:
    student_name: str
    age: Optional[int]
    answer: Optional[str]
    note: Optional[str]
    contact_name: Optional[str]
    contact_email: Optional[str]
    contact_phone: Optional[str]
    confirmation_code: str


def roster_entries(activity) -> List[RosterEntry]:
    """Paid, non-cancelled registrations of ``activity``, by student name."""
    reference = activity.start.date() if activity.start else \
        to_local(utcnow(), app_timezone()).date()

    rows = (
        db.session.query(Registration, Student, Contact, Payment)
        .join(Student, Registration.student_id == Student.id)
        .join(Payment, Registration.payment_id == Payment.id)
        .outerjoin(Contact, Registration.contact_id == Contact.id)
        .filter(
            Registration.activity == activity.id,
            Registration.cancelled_at.is_(None),
        )
        .order_by(Student.lastname, Student.firstname)
        .all()
    )

    return [
        RosterEntry(
            student_name=student.full_name,
            age=age_on(student.dob, reference),
            answer=registration.answer,
            note=registration.note,
            contact_name=contact.full_name if contact else None,
            contact_email=contact.email if contact else None,
            contact_phone=contact.phone if contact else None,
            confirmation_code=format_short_code(payment.short_code),
        )
        for registration, student, contact, payment in rows
    ]


def roster_workbook(activity, entries) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Roster"

    ws.append([activity.name])
    ws['A1'].font = Font(bold=True, size=14)
    ws.append(ROSTER_HEADERS)
    for cell in ws[2]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal='center')

    for idx, entry in enumerate(entries, start=1):
        ws.append([
            idx,
            entry.student_name,
            entry.age,
            entry.answer or '',
            entry.note or '',
            entry.contact_name or '',
            entry.contact_email or '',
            entry.contact_phone or '',
            entry.confirmation_code,
        ])

    for column, width in zip('ABCDEFGHI', (6, 28, 6, 30, 30, 28, 32, 16, 14)):
        ws.column_dimensions[column].width = width

    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def roster_filename(activity):
    slug = re.sub(r'[^\w\s-]', '', activity.name.lower())
    slug = re.sub(r'[-\s]+', '-', slug).strip('-') or activity.id
    ts = utcnow().strftime('%Y%m%dT%H%M%SZ')
    return f"{slug}_roster_{ts}.xlsx"


@dataclass
class InstructorRosters:
    instructor_id: str
    name: str
    email: str
    classes: List[ClassRoster] = field(default_factory=list)

    @property
    def total_students(self):
        return sum(len(c.students) for c in self.classes)


def upcoming_classes(catalog, now_local, activity_id=None, instructor_id=None,
                     weekday=None):
    """Catalog classes starting after ``now_local``, by start time."""
    tz = now_local.tzinfo
    wanted = normalize_activity_id(activity_id) if activity_id else None

    classes = []
    for activity in catalog:
        if activity.kind != 'class' or activity.start is None:
            continue
        if wanted and activity.id != wanted:
            continue
        if instructor_id and instructor_id not in activity.instructors:
            continue
        starts_at = activity.start.replace(tzinfo=tz)
        if starts_at <= now_local:
            continue
        if weekday is not None and starts_at.weekday() != weekday:
            continue
        classes.append((activity, starts_at))
    return sorted(classes, key=lambda pair: pair[1])


def group_rosters_by_instructor(classes, instructor_id=None) -> Dict[str, InstructorRosters]:
    catalog = get_catalog()
    grouped: Dict[str, InstructorRosters] = {}

    for activity, starts_at in classes:
        entries = roster_entries(activity)
        roster = ClassRoster(
            activity_name=activity.name,
            starts_at=starts_at,
            students=entries,
            attachment_name=roster_filename(activity),
            attachment=roster_workbook(activity, entries),
        )
        for teacher_id in activity.instructors:
            if instructor_id and teacher_id != instructor_id:
                continue
            instructor = catalog.instructor(teacher_id)
            if instructor is None or not instructor.email:
                current_app.logger.warning(
                    f"[rosters] Instructor {teacher_id} not found or has no email")
                continue
            group = grouped.get(teacher_id)
            if group is None:
                group = grouped[teacher_id] = InstructorRosters(
                    teacher_id, instructor.name, instructor.email)
            group.classes.append(roster)
    return grouped


def send_rosters(dry_run=False, instructor_id=None, activity_id=None, day=None,
                 now=None):
    """
    E-mail each instructor the rosters of their upcoming classes.

    ``instructor_id``, ``activity_id`` and ``day`` (SU..SA) narrow the run.
    With ``dry_run`` nothing is sent.
    """
    weekday = None
    if day:
        weekday = DAY_CODES.get(day.upper())
        if weekday is None:
            raise InvalidRequest(
                f"Invalid day parameter: {day}. Use SU, MO, TU, WE, TH, FR, or SA.")

    now_local = to_local(now or utcnow(), app_timezone())
    classes = upcoming_classes(get_catalog(), now_local, activity_id=activity_id,
                               instructor_id=instructor_id, weekday=weekday)
    if not classes:
        return _summary(True, 'No upcoming classes found', dry_run, 0, 0, [])

    try:
        grouped = group_rosters_by_instructor(classes, instructor_id=instructor_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[rosters] Failed to load registrations")
        raise InfrastructureError("Failed to load registrations for rosters")

    if not grouped:
        return _summary(True, 'No instructors found with enrolled classes',
                        dry_run, 0, 0, [])

    notifier = get_notifier()
    details = []
    for teacher_id, group in grouped.items():
        detail = {
            "instructorId": teacher_id,
            "classCount": len(group.classes),
            "totalStudents": group.total_students,
        }
        if dry_run:
            detail.update(success=True, error=None)
        else:
            result = notifier.send_class_rosters(group.email, group.name, group.classes)
            detail.update(success=result.success, error=result.error)
            if not result.success:
                current_app.logger.warning(
                    f"[rosters] Roster to {teacher_id} failed: {result.error}")
        details.append(detail)

    sent = sum(1 for d in details if d["success"])
    failed = len(details) - sent
    if dry_run:
        message = f"[DRY RUN] Would send {sent} roster emails"
    else:
        message = f"Sent {sent} roster emails"
        if failed:
            message += f", {failed} failed"

    current_app.logger.info(
        f"[rosters] {len(details)} instructor(s), {sent} sent, {failed} failed, "
        f"dry_run={dry_run}")
    return _summary(failed == 0, message, dry_run, sent, failed, details)


def _summary(success, message, dry_run, sent, failed, details):
    return {
        "success": success,
        "message": message,
        "dryRun": dry_run,
        "emailsSent": sent,
        "emailsFailed": failed,
        "details": details,
    }
