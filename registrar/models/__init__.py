from registrar.models.student import Student
from registrar.models.contact import Contact, contact_student
from registrar.models.voucher import Voucher
from registrar.models.payment import Payment
from registrar.models.registration import Registration, ActivityLock
from registrar.models.user import User

__all__ = [
    'Student', 'Contact', 'contact_student', 'Voucher', 'Payment',
    'Registration', 'ActivityLock', 'User'
]
