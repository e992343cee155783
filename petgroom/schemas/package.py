from marshmallow import fields, validate

from petgroom.schemas import BaseSchema


class PackagePriceSchema(BaseSchema):
    id = fields.Str(allow_none=True)
    package_id = fields.Str(dump_only=True)
    recurrence = fields.Int(required=True, validate=validate.Range(min=1))
    price = fields.Decimal(required=True, places=2, as_string=False, validate=validate.Range(min=0))
    is_active = fields.Bool()
    created_at = fields.DateTime(format='iso', dump_only=True)


class PackagePriceOutSchema(PackagePriceSchema):
    price = fields.Float()


class PackageSchema(BaseSchema):
    id = fields.Str(dump_only=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    description = fields.Str(allow_none=True)
    duration = fields.Int(allow_none=True, validate=validate.Range(min=1))
    is_active = fields.Bool()
    prices = fields.List(fields.Nested(PackagePriceSchema), load_default=list)
    created_at = fields.DateTime(format='iso', dump_only=True)
    updated_at = fields.DateTime(format='iso', dump_only=True)


class PackageUpdateSchema(PackageSchema):
    name = fields.Str(validate=validate.Length(min=1, max=255))
    prices = fields.List(fields.Nested(PackagePriceSchema))


class PackageOutSchema(PackageSchema):
    prices = fields.List(fields.Nested(PackagePriceOutSchema))
