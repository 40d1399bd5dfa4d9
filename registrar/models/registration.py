from registrar import db
from sqlalchemy.orm import validates


class Registration(db.Model):
    __tablename__ = 'registration'

    id = db.Column(db.Integer, primary_key=True)
    # Catalog activity id, always stored lower-case
    activity = db.Column(db.String(64), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey(
        'student.id'), nullable=False)
    contact_id = db.Column(db.Integer, db.ForeignKey('contact.id'))
    payment_id = db.Column(db.Integer, db.ForeignKey('payment.id'))
    cost = db.Column(db.Numeric(10, 2))
    donation = db.Column(db.Numeric(10, 2))
    note = db.Column(db.String(255))
    answer = db.Column(db.String(120))
    terms_agreement = db.Column(db.Boolean, default=False)
    # Soft hold on a seat while checkout is in progress
    reserved_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    reminded_at = db.Column(db.DateTime)
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)

    # A student holds at most one registration per activity
    __table_args__ = (db.UniqueConstraint(
        'activity', 'student_id', name='unique_registration_activity_student'),
        db.Index('ix_registration_activity_hold', 'activity',
                 'cancelled_at', 'payment_id', 'reserved_at'))

    @validates('activity')
    def normalize_activity(self, key, value):
        return value.strip().lower() if value else value

    @property
    def is_paid(self):
        return self.payment_id is not None

    def __repr__(self):
        return f'<Registration {self.id} Student:{self.student_id} Activity:{self.activity}>'

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso
        from registrar.utils.money import as_float

        return {
            'id': self.id,
            'activity': self.activity,
            'student_id': self.student_id,
            'contact_id': self.contact_id,
            'payment_id': self.payment_id,
            'cost': as_float(self.cost),
            'donation': as_float(self.donation),
            'note': self.note,
            'answer': self.answer,
            'terms_agreement': self.terms_agreement,
            'reserved_at': safe_iso(self.reserved_at),
            'cancelled_at': safe_iso(self.cancelled_at),
            'reminded_at': safe_iso(self.reminded_at),
            'created_at': safe_iso(self.created_at)
        }


class ActivityLock(db.Model):
    """One row per activity; locked FOR UPDATE while seats are reserved."""

    __tablename__ = 'activity_lock'

    activity = db.Column(db.String(64), primary_key=True)
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)

    def __repr__(self):
        return f'<ActivityLock {self.activity}>'
