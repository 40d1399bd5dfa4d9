from marshmallow import Schema, fields, validate, EXCLUDE
from registrar import ma
from registrar.models.voucher import Voucher


class VoucherCodeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    code = fields.Str(
        required=True,
        validate=validate.Length(min=1, error='Voucher code is required'),
        error_messages={'required': 'Voucher code is required'},
    )


class VoucherPublicSchema(ma.SQLAlchemySchema):
    """What a customer may see of a voucher."""

    class Meta:
        model = Voucher

    id = ma.auto_field(dump_only=True)
    code = ma.auto_field(dump_only=True)
    description = ma.auto_field(dump_only=True)
    percentage = ma.auto_field(dump_only=True)
    amount = fields.Float(dump_only=True, allow_none=True)
    applies_to = ma.auto_field(data_key='appliesTo', dump_only=True)


voucher_code_schema = VoucherCodeSchema()
voucher_public_schema = VoucherPublicSchema()
