from registrar import db


class Student(db.Model):
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    firstname = db.Column(db.String(100), nullable=False)
    lastname = db.Column(db.String(100), nullable=False)
    dob = db.Column(db.Date, nullable=False)
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)

    # (firstname, lastname, dob) is the student's identity
    __table_args__ = (db.UniqueConstraint(
        'firstname', 'lastname', 'dob', name='unique_student_identity'),)

    registrations = db.relationship(
        'Registration', backref='student', lazy=True)

    @property
    def full_name(self):
        return f"{self.firstname} {self.lastname}".strip()

    def __repr__(self):
        return f'<Student {self.firstname} {self.lastname}>'

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso

        return {
            'id': self.id,
            'firstname': self.firstname,
            'lastname': self.lastname,
            'dob': safe_iso(self.dob),
            'created_at': safe_iso(self.created_at)
        }
