from registrar import db


class Voucher(db.Model):
    __tablename__ = 'voucher'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    percentage = db.Column(db.Integer)  # 0-100
    amount = db.Column(db.Numeric(10, 2))  # fixed discount in dollars
    # Optional activity kind filter: class, group or event
    applies_to = db.Column(db.String(20))
    valid_from = db.Column(db.DateTime)
    valid_until = db.Column(db.DateTime)
    max_uses = db.Column(db.Integer)
    times_used = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(
    ), onupdate=db.func.now(), nullable=False)

    # Exactly one discount mode
    __table_args__ = (db.CheckConstraint(
        '(percentage IS NOT NULL AND amount IS NULL) OR '
        '(percentage IS NULL AND amount IS NOT NULL)',
        name='voucher_discount_check'),)

    @property
    def has_single_discount_mode(self):
        return (self.percentage is None) != (self.amount is None)

    def __repr__(self):
        return f'<Voucher {self.code}>'

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso
        from registrar.utils.money import as_float

        return {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'percentage': self.percentage,
            'amount': as_float(self.amount),
            'applies_to': self.applies_to,
            'valid_from': safe_iso(self.valid_from),
            'valid_until': safe_iso(self.valid_until),
            'max_uses': self.max_uses,
            'times_used': self.times_used,
            'active': self.active,
            'created_at': safe_iso(self.created_at),
            'updated_at': safe_iso(self.updated_at)
        }
