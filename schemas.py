# Request Shapes
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from errors import InvalidRequest

HISTORY_DEFAULT_LIMIT = 20
HISTORY_MAX_LIMIT = 200

# Largest value an INTEGER column holds on PostgreSQL
MAX_ID = 2_147_483_647


def _positive_int(value, message):
    # Accepts 730 or "730"; rejects booleans, floats and anything outside 1..MAX_ID
    if isinstance(value, bool):
        raise ValueError(message)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or not 0 < value <= MAX_ID:
        raise ValueError(message)
    return value


def _email(value):
    email = str(value or '').strip().lower()
    if not email or '@' not in email:
        raise ValueError('Missing or invalid email')
    return email


class AppIdRequest(BaseModel):
    appid: int = Field(default=None, validate_default=True)

    @field_validator('appid', mode='before')
    @classmethod
    def check_appid(cls, value):
        return _positive_int(value, 'Missing or invalid appid')


class AlertIdRequest(BaseModel):
    id: int = Field(default=None, validate_default=True)

    @field_validator('id', mode='before')
    @classmethod
    def check_id(cls, value):
        return _positive_int(value, 'Missing or invalid id')


class HistoryQuery(BaseModel):
    limit: int = HISTORY_DEFAULT_LIMIT

    @field_validator('limit', mode='before')
    @classmethod
    def clamp_limit(cls, value):
        try:
            limit = int(str(value).strip())
        except (TypeError, ValueError):
            return HISTORY_DEFAULT_LIMIT
        return max(1, min(limit, HISTORY_MAX_LIMIT))


class EmailQuery(BaseModel):
    email: str = Field(default=None, validate_default=True)

    @field_validator('email', mode='before')
    @classmethod
    def check_email(cls, value):
        return _email(value)


class DiscountAlertRequest(AppIdRequest):
    email: str = Field(default=None, validate_default=True)
    min_discount_percent: int = Field(default=None, validate_default=True)

    @field_validator('email', mode='before')
    @classmethod
    def check_email(cls, value):
        return _email(value)

    @field_validator('min_discount_percent', mode='before')
    @classmethod
    def check_threshold(cls, value):
        threshold = _positive_int(value, 'min_discount_percent must be between 1 and 100')
        if threshold > 100:
            raise ValueError('min_discount_percent must be between 1 and 100')
        return threshold


class AddGameRequest(BaseModel):
    appid: int = Field(default=None, validate_default=True)
    name: str = Field(default=None, validate_default=True)
    tiny_image: Optional[str] = None

    @field_validator('appid', mode='before')
    @classmethod
    def check_appid(cls, value):
        return _positive_int(value, 'Missing appid or name')

    @field_validator('name', mode='before')
    @classmethod
    def check_name(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError('Missing appid or name')
        return value.strip()

    @field_validator('tiny_image', mode='before')
    @classmethod
    def blank_image_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SampleEmailRequest(BaseModel):
    email: str = Field(default=None, validate_default=True)

    @field_validator('email', mode='before')
    @classmethod
    def check_email(cls, value):
        return _email(value)


def parse(model, data):
    """Validate request data into ``model``, turning failures into a 400 with the first message"""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object')

    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        cause = error.get('ctx', {}).get('error')
        raise InvalidRequest(str(cause) if cause else error['msg']) from None
