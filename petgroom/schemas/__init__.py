from marshmallow import EXCLUDE, fields, pre_load

from petgroom import ma


class NaiveDateTime(fields.DateTime):
    """ISO datetime loaded as a naive local value; any offset is dropped."""

    def _deserialize(self, value, attr, data, **kwargs):
        result = super()._deserialize(value, attr, data, **kwargs)
        if result.tzinfo is not None:
            result = result.astimezone().replace(tzinfo=None)
        return result


class BaseSchema(ma.Schema):
    """Blank strings from form inputs are treated as missing values."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def blank_to_none(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {key: (None if isinstance(value, str) and not value.strip() else value)
                for key, value in data.items()}
