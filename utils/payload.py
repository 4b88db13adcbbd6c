"""
Request body parsing. Every endpoint reads one fixed JSON shape; anything
missing or mistyped raises InvalidPayload (400) instead of being guessed at.
"""
from decimal import Decimal, InvalidOperation

from flask import request

from services.dates import to_datetime
from services.errors import InvalidPayload


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidPayload("Request body must be a JSON object")
    return data


def get_int(data: dict, field: str, required=True):
    value = data.get(field)
    if value is None:
        if required:
            raise InvalidPayload(f"{field} is required", field=field)
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise InvalidPayload(f"{field} must be an integer", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidPayload(f"{field} must be an integer", field=field)


def get_str(data: dict, field: str, required=True, max_length=None):
    value = data.get(field)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise InvalidPayload(f"{field} must be a string", field=field)
    value = value.strip()
    if not value:
        if required:
            raise InvalidPayload(f"{field} is required", field=field)
        return None
    if max_length and len(value) > max_length:
        raise InvalidPayload(f"{field} must be at most {max_length} characters", field=field)
    return value


def get_choice(data: dict, field: str, choices, required=False):
    value = get_str(data, field, required=required)
    if value is None:
        return None
    if value not in choices:
        raise InvalidPayload(f"{field} must be one of: {', '.join(choices)}", field=field)
    return value


def get_decimal(data: dict, field: str, required=True, positive=True, max_value=None):
    value = data.get(field)
    if value is None or value == "":
        if required:
            raise InvalidPayload(f"{field} is required", field=field)
        return None
    if isinstance(value, bool):
        raise InvalidPayload(f"{field} must be a number", field=field)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidPayload(f"{field} must be a number", field=field)
    if not amount.is_finite() or (positive and amount <= 0):
        raise InvalidPayload(f"{field} must be a positive number", field=field)
    if max_value is not None and amount > max_value:
        raise InvalidPayload(f"{field} must be at most {max_value}", field=field)
    return amount


def get_datetime(data: dict, field: str, required=True):
    value = data.get(field)
    if value is None or value == "":
        if required:
            raise InvalidPayload(f"{field} is required", field=field)
        return None
    return to_datetime(value, field)


def get_str_list(data: dict, field: str, required=True):
    value = data.get(field)
    if value is None:
        if required:
            raise InvalidPayload(f"{field} is required", field=field)
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
        raise InvalidPayload(f"{field} must be a list of strings", field=field)
    return [v.strip() for v in value]
