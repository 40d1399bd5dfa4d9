from datetime import date

import pytest

from registrar import create_app, db
from registrar.catalog import ActivityCatalog
from registrar.models.contact import Contact
from registrar.models.payment import Payment
from registrar.models.registration import Registration
from registrar.models.student import Student
from registrar.models.user import User
from registrar.models.voucher import Voucher
from registrar.services.notification_service import SendResult

CATALOG_RECORDS = [
    {"id": "strings-101", "name": "Beginning Strings", "kind": "class",
     "sizeMax": 2, "cost": 100, "start": "2026-11-03T17:30:00",
     "question": "Do you need an instrument?",
     "instructors": ["maria", "sam", "ghost"]},
    {"id": "orchestra", "name": "Youth Orchestra", "kind": "group",
     "cost": 50, "start": "2026-11-20T10:00:00"},
    {"id": "gala", "name": "Spring Gala", "kind": "event", "cost": 30},
    {"id": "open-house", "name": "Open House", "kind": "event", "sizeMax": 1,
     "cost": 0},
]

INSTRUCTOR_RECORDS = [
    {"id": "maria", "name": "Maria Lopez", "email": "maria@example.org"},
    {"id": "sam", "name": "Sam Okafor", "email": "sam@example.org"},
]


class FakeNotifier:
    """Records every e-mail instead of calling Brevo."""

    def __init__(self):
        self.confirmations = []
        self.reminders = []
        self.rosters = []
        self.fail = False
        self.raise_error = False

    def send_payment_confirmation(self, confirmation):
        if self.raise_error:
            raise RuntimeError("mail server exploded")
        self.confirmations.append(confirmation)
        if self.fail:
            return SendResult(False, error="rejected")
        return SendResult(True, message_id=f"msg-{len(self.confirmations)}")

    def send_class_reminder(self, recipient_email, recipient_name, activity_name,
                            starts_at, participants):
        self.reminders.append({
            "email": recipient_email,
            "name": recipient_name,
            "activity": activity_name,
            "starts_at": starts_at,
            "participants": list(participants),
        })
        if self.fail:
            return SendResult(False, error="rejected")
        return SendResult(True, message_id=f"rem-{len(self.reminders)}")

    def send_class_rosters(self, recipient_email, recipient_name, rosters):
        self.rosters.append({
            "email": recipient_email,
            "name": recipient_name,
            "rosters": list(rosters),
        })
        if self.fail:
            return SendResult(False, error="rejected")
        return SendResult(True, message_id=f"ros-{len(self.rosters)}")


@pytest.fixture
def catalog():
    return ActivityCatalog.from_records(CATALOG_RECORDS, INSTRUCTOR_RECORDS)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app(catalog, notifier):
    """Testing app on a file-backed SQLite database, fresh for every test."""
    _app = create_app('testing', catalog=catalog, notifier=notifier)

    # Keep the context open for the whole test; tests use db.session directly
    with _app.app_context():
        db.drop_all()
        db.create_all()

        yield _app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Authorization header of an admin user."""
    user = User(username='testadmin', role='Admin')
    user.set_password('testpassword')
    db.session.add(user)
    db.session.commit()

    from flask_jwt_extended import create_access_token
    token = create_access_token(identity=str(user.id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def make_registration(app):
    """Create student (+ contact) + registration rows; returns the registration id."""

    def _make(activity, first='Ada', last='Lovelace', dob=date(2014, 5, 1),
              cost=None, donation=None, email='parent@example.com',
              payment_id=None, reserved_at=None, cancelled_at=None):
        student = Student.query.filter_by(firstname=first, lastname=last, dob=dob).first()
        if student is None:
            student = Student(firstname=first, lastname=last, dob=dob)
            db.session.add(student)

        contact = None
        if email:
            contact = Contact.query.filter_by(email=email).first()
            if contact is None:
                contact = Contact(firstname='Pat', lastname='Parent', email=email)
                db.session.add(contact)
        db.session.flush()

        registration = Registration(
            activity=activity,
            student_id=student.id,
            contact_id=contact.id if contact else None,
            cost=cost,
            donation=donation,
            payment_id=payment_id,
            reserved_at=reserved_at,
            cancelled_at=cancelled_at,
            terms_agreement=True,
        )
        db.session.add(registration)
        db.session.commit()
        return registration.id

    return _make


@pytest.fixture
def make_payment(app):
    def _make(short_code='PAID22', amount=0):
        payment = Payment(transaction_id=f'TEST-{short_code}', amount=amount,
                          short_code=short_code)
        db.session.add(payment)
        db.session.commit()
        return payment.id

    return _make


@pytest.fixture
def make_voucher(app):
    def _make(code='SPRING10', **kwargs):
        kwargs.setdefault('percentage', None if 'amount' in kwargs else 10)
        kwargs.setdefault('times_used', 0)
        kwargs.setdefault('active', True)
        voucher = Voucher(code=code, **kwargs)
        db.session.add(voucher)
        db.session.commit()
        return voucher.id

    return _make
