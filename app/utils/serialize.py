from bson import ObjectId

from app.utils.errors import ValidationError

PRIVATE_USER_FIELDS = ("password", "forgotPassCode", "verificationToken")


def serialize_doc(doc, exclude=()):
    """Mongo document -> JSON-friendly dict with `id` instead of `_id`."""
    if doc is None:
        return None

    result = {}
    for key, value in doc.items():
        if key in exclude:
            continue
        if key == "_id":
            result["id"] = str(value)
        else:
            result[key] = _convert(value)
    return result


def _convert(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def public_user(user):
    return serialize_doc(user, exclude=PRIVATE_USER_FIELDS)


def parse_object_id(value, label="ID"):
    if not value or not ObjectId.is_valid(str(value)):
        raise ValidationError(f"Invalid {label}")
    return ObjectId(str(value))
