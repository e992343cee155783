from marshmallow import fields, validate, validates_schema, ValidationError

from petgroom.models.scheduling import SCHEDULING_STATUSES
from petgroom.schemas import BaseSchema, NaiveDateTime
from petgroom.schemas.subscription import PICKUP_TIME_PATTERN
from petgroom.utils.pricing import ADJUSTMENT_REASONS


class SchedulingCreateSchema(BaseSchema):
    client_id = fields.Str(required=True)
    pet_ids = fields.List(fields.Str(), required=True, validate=validate.Length(
        min=1, error='At least one pet must be selected'))
    pickup_date = NaiveDateTime(required=True)
    pickup_time = fields.Str(allow_none=True, validate=validate.Regexp(PICKUP_TIME_PATTERN))
    base_price = fields.Decimal(places=2, required=True, validate=validate.Range(min=0))
    adjustment_percentage = fields.Decimal(places=2, load_default=0, validate=validate.Range(min=-100, max=100))
    adjustment_reason = fields.Str(allow_none=True, validate=validate.OneOf(ADJUSTMENT_REASONS))
    notes = fields.Str(allow_none=True)


class SchedulingUpdateSchema(BaseSchema):
    status = fields.Str(validate=validate.OneOf(SCHEDULING_STATUSES))
    pickup_time = fields.Str(allow_none=True, validate=validate.Regexp(PICKUP_TIME_PATTERN))
    adjustment_value = fields.Decimal(places=2)
    adjustment_reason = fields.Str(allow_none=True, validate=validate.OneOf(ADJUSTMENT_REASONS))
    notes = fields.Str(allow_none=True)

    @validates_schema
    def require_change(self, data, **kwargs):
        if not data:
            raise ValidationError('No changes were provided')


class SchedulingPetSchema(BaseSchema):
    pet_id = fields.Str()
    pet_name = fields.Function(lambda row: row.pet.name if row.pet else None)
    package_price_id = fields.Str(allow_none=True)


class SchedulingSchema(BaseSchema):
    id = fields.Str()
    client_id = fields.Str()
    client_name = fields.Function(lambda s: s.client.name if s.client else None)
    pickup_date = fields.DateTime(format='iso')
    pickup_time = fields.Str(allow_none=True)
    status = fields.Str()
    base_price = fields.Float()
    adjustment_value = fields.Float()
    adjustment_percentage = fields.Float()
    adjustment_reason = fields.Str(allow_none=True)
    final_price = fields.Float()
    notes = fields.Str(allow_none=True)
    started_at = fields.DateTime(format='iso', allow_none=True)
    completed_at = fields.DateTime(format='iso', allow_none=True)
    pets = fields.List(fields.Nested(SchedulingPetSchema), attribute='scheduling_pets')
    created_at = fields.DateTime(format='iso')
