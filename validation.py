"""Request payload validation.

Every validator collects messages per field and raises a single
``ValidationError`` carrying all of them, or returns the cleaned values.
"""

import re
from datetime import date, datetime

from errors import ValidationError
from models import TASK_STATUSES

EMAIL_REGEX = r'^[\w\.+-]+@[\w\.-]+\.\w+$'  # basic email pattern
MAX_LENGTH = 255
MIN_PASSWORD_LENGTH = 6


class _Errors(dict):
    def add(self, field, message):
        self.setdefault(field, []).append(message)

    def raise_if_any(self):
        if self:
            raise ValidationError(dict(self))


def _string(data, field, errors, required=True, max_length=MAX_LENGTH):
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            errors.add(field, f"The {field} field is required.")
        return None
    if not isinstance(value, str):
        errors.add(field, f"The {field} field must be a string.")
        return None
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        errors.add(field, f"The {field} field must not be greater than {max_length} characters.")
    return value


def _payload(data):
    """The request body as a dict; a missing body counts as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError({"body": ["The request body must be a JSON object."]})
    return data


def _email(data, errors):
    email = _string(data, "email", errors)
    if email is not None and not re.match(EMAIL_REGEX, email):
        errors.add("email", "The email field must be a valid email address.")
    return email


def _password(data, errors):
    password = data.get("password")
    if password is None or password == "":
        errors.add("password", "The password field is required.")
        return None
    if not isinstance(password, str):
        errors.add("password", "The password field must be a string.")
        return None
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.add("password",
                   f"The password field must be at least {MIN_PASSWORD_LENGTH} characters.")
    return password


def validate_registration(data):
    data = _payload(data)
    errors = _Errors()
    cleaned = {
        "name": _string(data, "name", errors),
        "username": _string(data, "username", errors),
        "email": _email(data, errors),
        "password": _password(data, errors),
    }
    errors.raise_if_any()
    return cleaned


def validate_login(data):
    data = _payload(data)
    errors = _Errors()
    cleaned = {
        "email": _email(data, errors),
        "password": _password(data, errors),
    }
    errors.raise_if_any()
    return cleaned


def parse_deadline(value):
    """Parse an ISO date, or an ISO datetime whose date part is kept.

    Empty values mean no deadline; anything else raises ValueError.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("deadline must be a string")
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value).date()


def validate_task(data, require_owner):
    """Validate a create/update payload.

    ``user_id`` (the assignee) is only read when ``require_owner`` is set.
    """
    data = _payload(data)
    errors = _Errors()
    cleaned = {
        "title": _string(data, "title", errors),
        "description": _string(data, "description", errors, required=False, max_length=None),
    }

    status = data.get("status")
    if status is None or status == "":
        errors.add("status", "The status field is required.")
    elif not isinstance(status, str) or status not in TASK_STATUSES:
        errors.add("status", "The selected status is invalid.")
    cleaned["status"] = status

    try:
        cleaned["deadline"] = parse_deadline(data.get("deadline"))
    except ValueError:
        errors.add("deadline", "The deadline field must be a valid date.")

    if require_owner:
        user_id = data.get("user_id")
        if user_id is None or user_id == "":
            errors.add("user_id", "The user id field is required.")
        elif isinstance(user_id, bool):
            errors.add("user_id", "The user id field must be an integer.")
        else:
            try:
                cleaned["user_id"] = int(user_id)
            except (TypeError, ValueError):
                errors.add("user_id", "The user id field must be an integer.")

    errors.raise_if_any()
    return cleaned
