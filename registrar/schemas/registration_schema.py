from marshmallow import Schema, fields, validate, validates, ValidationError, EXCLUDE


class RegistrationIdsSchema(Schema):
    """Body of the registration-details (checkout reservation) call."""

    class Meta:
        unknown = EXCLUDE

    registration_ids = fields.List(
        fields.Int(strict=False),
        data_key='registrationIds',
        required=True,
        validate=validate.Length(min=1, error='Registration IDs are required'),
        error_messages={'required': 'Registration IDs are required'},
    )


class RegistrationStudentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    first_name = fields.Str(data_key='firstName', required=True,
                            validate=validate.Length(min=1, max=100))
    last_name = fields.Str(data_key='lastName', required=True,
                           validate=validate.Length(min=1, max=100))
    birthdate = fields.Date(required=True)
    activity_id = fields.Str(data_key='activityId', required=True,
                             validate=validate.Length(min=1, max=64))


class RegistrationContactSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    first_name = fields.Str(data_key='firstName', required=True,
                            validate=validate.Length(min=1, max=100))
    last_name = fields.Str(data_key='lastName', required=True,
                           validate=validate.Length(min=1, max=100))
    email = fields.Email(required=True, validate=validate.Length(max=512))
    phone = fields.Str(load_default=None, allow_none=True,
                       validate=validate.Length(max=20))
    address = fields.Str(load_default=None, allow_none=True,
                         validate=validate.Length(max=512))
    city = fields.Str(load_default=None, allow_none=True,
                      validate=validate.Length(max=100))
    state = fields.Str(load_default=None, allow_none=True,
                       validate=validate.Length(max=4))
    zip = fields.Str(load_default=None, allow_none=True,
                     validate=validate.Length(max=10))
    registration_id = fields.Int(data_key='registrationId', required=True)
    student_id = fields.Int(data_key='studentId',
                            load_default=None, allow_none=True)


class RegistrationInfoSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    registration_id = fields.Int(
        data_key='registrationId', required=True,
        error_messages={'required': 'Registration ID is required'})
    answer = fields.Str(load_default=None, allow_none=True,
                        validate=validate.Length(max=120))
    donation_amount = fields.Decimal(
        data_key='donationAmount', load_default=None, allow_none=True,
        places=2, validate=validate.Range(min=0))
    note = fields.Str(load_default=None, allow_none=True,
                      validate=validate.Length(max=255))
    terms_agreement = fields.Bool(
        data_key='termsAgreement', required=True,
        error_messages={'required': 'Terms agreement is required'})

    @validates('terms_agreement')
    def validate_terms(self, value, **kwargs):
        if not value:
            raise ValidationError('Terms agreement is required')


class CancelRegistrationSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    registration_id = fields.Int(
        data_key='registrationId', required=True,
        error_messages={'required': 'Registration ID is required'})


registration_ids_schema = RegistrationIdsSchema()
registration_student_schema = RegistrationStudentSchema()
registration_contact_schema = RegistrationContactSchema()
registration_info_schema = RegistrationInfoSchema()
cancel_registration_schema = CancelRegistrationSchema()
