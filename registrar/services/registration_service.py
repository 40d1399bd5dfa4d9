"""
The multi-step registration flow that precedes checkout:

1. student + activity      -> register_student
2. guardian / contact      -> save_contact
3. donation, answer, terms -> save_registration_info

plus back-office cancellation.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from registrar import db
from registrar.catalog import get_catalog
from registrar.exceptions import (
    Conflict, InfrastructureError, InvalidRequest, NotFound, ServiceError
)
from registrar.models.contact import Contact, contact_student
from registrar.models.registration import Registration
from registrar.models.student import Student
from registrar.utils.datetime_utils import utcnow
from registrar.utils.money import as_float, quantize


def get_or_create_student(first_name, last_name, dob):
    """Students are identified by (first name, last name, date of birth)."""
    lookup = dict(firstname=first_name.strip(), lastname=last_name.strip(), dob=dob)
    student = Student.query.filter_by(**lookup).first()
    if student is not None:
        return student

    student = Student(**lookup)
    try:
        with db.session.begin_nested():
            db.session.add(student)
    except IntegrityError:
        # Created by a concurrent request between our lookup and insert
        student = Student.query.filter_by(**lookup).one()
    return student


def get_or_create_contact(data):
    lookup = dict(
        firstname=data["first_name"].strip(),
        lastname=data["last_name"].strip(),
        email=data["email"].strip().lower(),
    )
    contact = Contact.query.filter_by(**lookup).first()
    if contact is None:
        contact = Contact(**lookup)
        db.session.add(contact)

    # Latest submission wins for the optional address fields
    for field in ("phone", "address", "city", "state", "zip"):
        if data.get(field):
            setattr(contact, field, data[field].strip())
    db.session.flush()
    return contact


def link_contact_student(contact_id, student_id):
    exists = db.session.execute(
        db.select(contact_student.c.id).where(
            contact_student.c.contact_id == contact_id,
            contact_student.c.student_id == student_id,
        )
    ).first()
    if exists is None:
        db.session.execute(contact_student.insert().values(
            contact_id=contact_id, student_id=student_id))


def register_student(first_name, last_name, birthdate, activity_id):
    """
    Create (or resume) the registration of a student for an activity.

    Returns the response payload. Raises Conflict when the student already
    holds a paid registration for the activity.
    """
    activity = get_catalog().get(activity_id)
    if activity is None:
        raise NotFound("Activity not found")

    try:
        student = get_or_create_student(first_name, last_name, birthdate)
        registration = Registration.query.filter_by(
            activity=activity.id, student_id=student.id).first()

        if registration is None:
            registration = Registration(activity=activity.id, student_id=student.id)
            try:
                with db.session.begin_nested():
                    db.session.add(registration)
            except IntegrityError:
                registration = Registration.query.filter_by(
                    activity=activity.id, student_id=student.id).one()
            else:
                db.session.commit()
                current_app.logger.info(
                    f"[registrations] Student {student.id} registered for {activity.id}")
                return {
                    "message": "Student and registration saved successfully",
                    "studentId": student.id,
                    "registrationId": registration.id,
                    "activityId": activity.id,
                }

        if registration.payment_id is not None:
            raise Conflict("Student is already registered for this activity", {
                "alreadyRegistered": True,
                "studentId": student.id,
                "activityId": activity.id,
            })

        if registration.cancelled_at is not None:
            registration.cancelled_at = None
            registration.reserved_at = None
            current_app.logger.info(
                f"[registrations] Reactivated cancelled registration {registration.id}")

        db.session.commit()
        return {
            "message": "Registration in progress",
            "registrationInProgress": True,
            "studentId": student.id,
            "registrationId": registration.id,
            "contactId": registration.contact_id,
            "activityId": activity.id,
        }
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[registrations] Failed to save student")
        raise InfrastructureError("Failed to save registration")


def _get_open_registration(registration_id):
    registration = db.session.get(Registration, registration_id)
    if registration is None:
        raise NotFound("Registration not found")
    if registration.payment_id is not None:
        raise Conflict("Registration has already been paid")
    return registration


def save_contact(data):
    try:
        registration = _get_open_registration(data["registration_id"])
        if data.get("student_id") and data["student_id"] != registration.student_id:
            raise InvalidRequest("Student does not match registration")

        contact = get_or_create_contact(data)
        registration.contact_id = contact.id
        link_contact_student(contact.id, registration.student_id)
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[registrations] Failed to save contact")
        raise InfrastructureError("Failed to save contact")

    return {
        "message": "Contact saved successfully",
        "contactId": contact.id,
        "registrationId": registration.id,
    }


def save_registration_info(data):
    """Store donation, answer, note and terms; the cost always comes from the catalog."""
    try:
        registration = _get_open_registration(data["registration_id"])
        activity = get_catalog().get(registration.activity)
        if activity is None:
            raise NotFound("Activity not found")

        cost = quantize(activity.cost or 0)
        donation = data.get("donation_amount")
        registration.cost = cost
        registration.donation = quantize(donation) if donation is not None else None
        registration.answer = data.get("answer")
        registration.note = data.get("note")
        registration.terms_agreement = bool(data["terms_agreement"])
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "[registrations] Failed to save registration information")
        raise InfrastructureError("Failed to save registration information")

    donation = registration.donation if registration.donation is not None else 0
    return {
        "message": "Registration information saved successfully",
        "registrationId": registration.id,
        "courseCost": as_float(cost),
        "donationAmount": as_float(registration.donation),
        "totalAmount": as_float(quantize(cost + quantize(donation))),
    }


def cancel_registration(registration_id, now=None):
    """Mark a registration cancelled; it stops holding a seat immediately."""
    now = now or utcnow()
    try:
        updated = db.session.query(Registration).filter(
            Registration.id == registration_id,
            Registration.cancelled_at.is_(None),
        ).update({Registration.cancelled_at: now}, synchronize_session=False)
        if not updated:
            raise NotFound("Registration not found or already cancelled")
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            f"[registrations] Failed to cancel registration {registration_id}")
        raise InfrastructureError("Failed to cancel registration")

    current_app.logger.info(f"[registrations] Registration {registration_id} cancelled")
    return {
        "message": "Registration cancelled",
        "registrationId": registration_id,
        "cancelledAt": now.isoformat(),
    }
