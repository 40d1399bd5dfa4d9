from registrar import db


class Payment(db.Model):
    __tablename__ = 'payment'

    id = db.Column(db.Integer, primary_key=True)
    # PayPal order id, or a synthetic FREE-<ms> / CHECK-<ms> reference
    transaction_id = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    voucher_id = db.Column(db.Integer, db.ForeignKey('voucher.id'))
    short_code = db.Column(db.String(6), unique=True, nullable=False)
    refunded_at = db.Column(db.DateTime)
    cheque_number = db.Column(db.String(20))
    note = db.Column(db.String(255))
    created_at = db.Column(
        db.DateTime, server_default=db.func.now(), nullable=False)

    registrations = db.relationship(
        'Registration', backref='payment', lazy=True)
    voucher = db.relationship('Voucher', lazy=True)

    def __repr__(self):
        return f'<Payment {self.short_code} {self.amount}>'

    def to_dict(self):
        from registrar.utils.datetime_utils import safe_iso
        from registrar.utils.money import as_float
        from registrar.utils.shortcode import format_short_code

        return {
            'id': self.id,
            'transaction_id': self.transaction_id,
            'amount': as_float(self.amount),
            'voucher_id': self.voucher_id,
            'short_code': self.short_code,
            'confirmation_code': format_short_code(self.short_code),
            'refunded_at': safe_iso(self.refunded_at),
            'cheque_number': self.cheque_number,
            'note': self.note,
            'created_at': safe_iso(self.created_at)
        }
