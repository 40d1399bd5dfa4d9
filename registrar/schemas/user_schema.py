from marshmallow import Schema, fields, validate


class UserLoginSchema(Schema):
    username = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, validate=validate.Length(min=1))


user_login_schema = UserLoginSchema()
