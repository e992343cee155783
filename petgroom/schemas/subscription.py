from marshmallow import fields, validate

from petgroom.schemas import BaseSchema, NaiveDateTime
from petgroom.utils.pricing import ADJUSTMENT_REASONS

PICKUP_TIME_PATTERN = r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$'


class SubscriptionInputSchema(BaseSchema):
    """Subscription fields as they appear nested under a pet."""
    id = fields.Str(allow_none=True)
    package_price_id = fields.Str(required=True)
    pickup_day_of_week = fields.Int(required=True, validate=validate.Range(min=0, max=6))
    pickup_time = fields.Str(allow_none=True, validate=validate.Regexp(
        PICKUP_TIME_PATTERN, error='Pickup time must use the HH:MM format'))
    start_date = NaiveDateTime(allow_none=True)
    end_date = NaiveDateTime(allow_none=True)
    adjustment_percentage = fields.Decimal(places=2, allow_none=True, validate=validate.Range(min=-100, max=100))
    adjustment_reason = fields.Str(allow_none=True, validate=validate.OneOf(ADJUSTMENT_REASONS))
    notes = fields.Str(allow_none=True)


class SubscriptionCreateSchema(SubscriptionInputSchema):
    client_id = fields.Str(required=True)
    pet_id = fields.Str(required=True)


class SubscriptionUpdateSchema(SubscriptionInputSchema):
    package_price_id = fields.Str()
    pickup_day_of_week = fields.Int(validate=validate.Range(min=0, max=6))


class CalculatePriceSchema(BaseSchema):
    client_id = fields.Str(required=True)
    package_price_id = fields.Str(required=True)
    custom_adjustment_percentage = fields.Decimal(places=2, allow_none=True, validate=validate.Range(min=-100, max=100))


class SubscriptionSchema(BaseSchema):
    id = fields.Str()
    client_id = fields.Str()
    pet_id = fields.Str()
    package_price_id = fields.Str()
    recurrence = fields.Int()
    pickup_day_of_week = fields.Int()
    pickup_time = fields.Str(allow_none=True)
    start_date = fields.DateTime(format='iso')
    next_pickup_date = fields.DateTime(format='iso', allow_none=True)
    end_date = fields.DateTime(format='iso', allow_none=True)
    base_price = fields.Float()
    adjustment_value = fields.Float()
    adjustment_percentage = fields.Float()
    adjustment_reason = fields.Str(allow_none=True)
    final_price = fields.Float()
    is_active = fields.Bool()
    notes = fields.Str(allow_none=True)
    created_at = fields.DateTime(format='iso')
    updated_at = fields.DateTime(format='iso')
