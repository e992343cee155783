from marshmallow import fields, validate

from petgroom.models.client import PET_SIZES
from petgroom.schemas import BaseSchema
from petgroom.schemas.subscription import SubscriptionInputSchema, SubscriptionSchema


class PetInputSchema(BaseSchema):
    id = fields.Str(allow_none=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    breed = fields.Str(allow_none=True)
    size = fields.Str(allow_none=True, validate=validate.OneOf(PET_SIZES))
    weight = fields.Decimal(places=2, allow_none=True, validate=validate.Range(min=0))
    notes = fields.Str(allow_none=True)
    subscription = fields.Nested(SubscriptionInputSchema, allow_none=True)


class ClientInputSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(allow_none=True)
    phone = fields.Str(allow_none=True)
    address = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    is_active = fields.Bool()
    pets = fields.List(fields.Nested(PetInputSchema), load_default=list)


class ClientUpdateSchema(ClientInputSchema):
    name = fields.Str(validate=validate.Length(min=1, max=255))
    pets = fields.List(fields.Nested(PetInputSchema))


class ClientPatchSchema(ClientUpdateSchema):
    class Meta(ClientUpdateSchema.Meta):
        exclude = ('pets',)


class PetSchema(BaseSchema):
    id = fields.Str()
    client_id = fields.Str()
    name = fields.Str()
    breed = fields.Str(allow_none=True)
    size = fields.Str(allow_none=True)
    weight = fields.Float(allow_none=True)
    notes = fields.Str(allow_none=True)
    subscription = fields.Method('get_subscription')

    def get_subscription(self, pet):
        subscription = pet.active_subscription
        return SubscriptionSchema().dump(subscription) if subscription else None


class ClientSchema(BaseSchema):
    id = fields.Str()
    name = fields.Str()
    email = fields.Str(allow_none=True)
    phone = fields.Str(allow_none=True)
    address = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    is_active = fields.Bool()
    discount_pet_id = fields.Str(allow_none=True)
    pets = fields.List(fields.Nested(PetSchema))
    created_at = fields.DateTime(format='iso')
    updated_at = fields.DateTime(format='iso')
