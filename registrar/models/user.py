# registrar/models/user.py
from werkzeug.security import generate_password_hash, check_password_hash

from registrar import db

USER_ROLES = ("Admin", "Staff")


class User(db.Model):
    """Back-office login. Only Admin accounts may cancel, remind or send rosters."""

    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('Admin', 'Staff')", name="ck_users_role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), default="Staff", nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login_at = db.Column(db.DateTime)

    @property
    def is_admin(self):
        return self.role == "Admin"

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso

        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "last_login_at": safe_iso(self.last_login_at),
        }
