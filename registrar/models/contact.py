from registrar import db


contact_student = db.Table(
    'contact_student',
    db.Column('id', db.Integer, primary_key=True),
    db.Column('contact_id', db.Integer, db.ForeignKey(
        'contact.id'), nullable=False),
    db.Column('student_id', db.Integer, db.ForeignKey(
        'student.id'), nullable=False),
    db.Column('created_at', db.DateTime,
              server_default=db.func.now(), nullable=False),
    db.UniqueConstraint('contact_id', 'student_id',
                        name='unique_contact_student'),
)


class Contact(db.Model):
    __tablename__ = 'contact'

    id = db.Column(db.Integer, primary_key=True)
    firstname = db.Column(db.String(100), nullable=False)
    lastname = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(512), nullable=False)
    phone = db.Column(db.String(20))
    address = db.Column(db.String(512))
    city = db.Column(db.String(100))
    state = db.Column(db.String(4))
    zip = db.Column(db.String(10))
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)

    registrations = db.relationship(
        'Registration', backref='contact', lazy=True)
    students = db.relationship(
        'Student', secondary=contact_student, lazy=True, viewonly=True)

    @property
    def full_name(self):
        return f"{self.firstname} {self.lastname or ''}".strip()

    def __repr__(self):
        return f'<Contact {self.email}>'

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso

        return {
            'id': self.id,
            'firstname': self.firstname,
            'lastname': self.lastname,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip': self.zip,
            'created_at': safe_iso(self.created_at)
        }
