from marshmallow import fields, validate

from petgroom.schemas import BaseSchema


class RegisterSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))


class LoginSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)


class UserSchema(BaseSchema):
    id = fields.Str(dump_only=True)
    name = fields.Str()
    email = fields.Email()
    is_active = fields.Bool()
    created_at = fields.DateTime(format='iso')
