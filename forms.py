# Request body validation
import re

from errors import ValidationError

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_PASSWORD_LENGTH = 6


def validate_email(email):
    return isinstance(email, str) and EMAIL_RE.match(email) is not None


def validate_password(password):
    return isinstance(password, str) and len(password) >= MIN_PASSWORD_LENGTH


def _envelope(data, key):
    """Return the ``{key: {...}}`` object every request body is wrapped in."""
    if not isinstance(data, dict) or not isinstance(data.get(key), dict):
        raise ValidationError(f"request body must be a JSON object with a '{key}' object")
    return data[key]


def _string(body, name, required=False):
    value = body.get(name)
    if value is None:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if required and not value.strip():
        raise ValidationError(f"{name} can't be blank")
    return value


def _tag_list(body):
    tags = body.get('tagList')
    if tags is None:
        return None
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("tagList must be a list of strings")
    return tags


def register_form(data):
    body = _envelope(data, 'player')
    form = {
        'username': _string(body, 'username', required=True),
        'email': _string(body, 'email', required=True),
        'password': _string(body, 'password', required=True),
    }
    if not validate_email(form['email']):
        raise ValidationError("invalid email format")
    if not validate_password(form['password']):
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    return form


def login_form(data):
    body = _envelope(data, 'player')
    return {
        'email': _string(body, 'email', required=True),
        'password': _string(body, 'password', required=True),
    }


def player_update_form(data, player):
    """Start from the player's current values and overlay what the client sent."""
    body = _envelope(data, 'player')
    fields = {
        'username': player.username,
        'email': player.email,
        'bio': player.bio,
        'image': player.image,
    }
    for name in fields:
        value = _string(body, name)
        if value is not None:
            fields[name] = value

    if not fields['username'].strip():
        raise ValidationError("username can't be blank")
    if not validate_email(fields['email']):
        raise ValidationError("invalid email format")

    password = _string(body, 'password')
    if password is not None:
        if not validate_password(password):
            raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        fields['password'] = password
    return fields


def item_create_form(data):
    body = _envelope(data, 'item')
    return {
        'title': _string(body, 'title', required=True),
        'description': _string(body, 'description') or '',
        'body': _string(body, 'body') or '',
        'tags': _tag_list(body) or [],
    }


def item_update_form(data, item):
    """Populate from ``item``, overlay the client's fields.

    ``tags`` is None when the client sent no tagList, which keeps the
    current tag set.
    """
    body = _envelope(data, 'item')
    fields = {
        'title': item.title,
        'description': item.description,
        'body': item.body,
    }
    for name in fields:
        value = _string(body, name)
        if value is not None:
            fields[name] = value
    if not fields['title'].strip():
        raise ValidationError("title can't be blank")
    return fields, _tag_list(body)


def comment_form(data):
    body = _envelope(data, 'comment')
    return {'body': _string(body, 'body', required=True)}
