"""Shared payload helpers for creating and updating Park and Court records."""

from courtside.sports import (
    COURT_CONDITIONS, GAME_FORMAT_PLAYER_COUNTS, SPORT_TYPES,
    normalize_condition, normalize_sport_type,
)

_BOOL_TRUE = {'true', '1', 'yes', 'on'}
_BOOL_FALSE = {'false', '0', 'no', 'off'}

PARK_WRITABLE_FIELDS = [
    'name', 'address', 'city', 'state', 'latitude', 'longitude',
    'description', 'amenities', 'photo_urls',
]
COURT_WRITABLE_FIELDS = [
    'court_number', 'custom_name', 'sport_type', 'condition',
    'has_lighting', 'is_half_court', 'game_format', 'condition_notes',
]

_STRING_LIMITS = {
    'name': 200,
    'address': 500,
    'city': 100,
    'state': 50,
    'description': 3000,
    'custom_name': 120,
    'condition_notes': 1000,
}
_LIST_LIMITS = {
    'amenities': 60,
    'photo_urls': 500,
}
_FLOAT_FIELDS = {'latitude', 'longitude'}
_BOOL_FIELDS = {'has_lighting', 'is_half_court'}


def _clean_text(value, max_len):
    if value is None:
        return ''
    text = str(value).strip()
    if len(text) > max_len:
        return text[:max_len]
    return text


def parse_float(value):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_int(value):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized in _BOOL_TRUE:
        return True
    if normalized in _BOOL_FALSE:
        return False
    return None


def _clean_list(value, max_len):
    if not isinstance(value, (list, tuple)):
        return None
    return [_clean_text(item, max_len) for item in value if _clean_text(item, max_len)]


def normalize_park_payload(raw_data, partial=False):
    """Return normalized park payload and validation errors."""
    if not isinstance(raw_data, dict):
        return {}, ['Invalid JSON payload']

    errors = []
    park_data = {}

    for field in PARK_WRITABLE_FIELDS:
        if field not in raw_data:
            continue
        value = raw_data.get(field)

        if field in _STRING_LIMITS:
            park_data[field] = _clean_text(value, _STRING_LIMITS[field])
            continue

        if field in _LIST_LIMITS:
            cleaned = _clean_list(value, _LIST_LIMITS[field])
            if cleaned is None:
                errors.append(f'{field} must be a list.')
                continue
            park_data[field] = cleaned
            continue

        if field in _FLOAT_FIELDS:
            parsed = parse_float(value)
            if parsed is None:
                errors.append(f'{field} must be a number.')
                continue
            if field == 'latitude' and not -90 <= parsed <= 90:
                errors.append('Latitude must be between -90 and 90.')
                continue
            if field == 'longitude' and not -180 <= parsed <= 180:
                errors.append('Longitude must be between -180 and 180.')
                continue
            park_data[field] = parsed

    if 'name' in park_data and not park_data['name']:
        errors.append('name cannot be empty.')

    if not partial:
        if not park_data.get('name') or 'latitude' not in park_data or 'longitude' not in park_data:
            errors.append('Name, latitude, and longitude are required')

    return park_data, errors


def normalize_court_payload(raw_data, partial=False):
    """Return normalized court payload and validation errors."""
    if not isinstance(raw_data, dict):
        return {}, ['Invalid JSON payload']

    errors = []
    court_data = {}

    for field in COURT_WRITABLE_FIELDS:
        if field not in raw_data:
            continue
        value = raw_data.get(field)

        if field == 'court_number':
            parsed = parse_int(value)
            if parsed is None or parsed < 1:
                errors.append('court_number must be a positive integer.')
                continue
            court_data[field] = parsed
            continue

        if field == 'sport_type':
            normalized = normalize_sport_type(value, fallback='')
            if not normalized:
                allowed = ', '.join(SPORT_TYPES)
                errors.append(f'sport_type must be one of: {allowed}.')
                continue
            court_data[field] = normalized
            continue

        if field == 'game_format':
            # Empty clears the format.
            text = _clean_text(value, 10).lower()
            if text and text not in GAME_FORMAT_PLAYER_COUNTS:
                allowed = ', '.join(GAME_FORMAT_PLAYER_COUNTS)
                errors.append(f'game_format must be one of: {allowed}.')
                continue
            court_data[field] = text or None
            continue

        if field == 'condition':
            normalized = normalize_condition(value, fallback='')
            if not normalized:
                allowed = ', '.join(COURT_CONDITIONS)
                errors.append(f'condition must be one of: {allowed}.')
                continue
            court_data[field] = normalized
            continue

        if field in _STRING_LIMITS:
            court_data[field] = _clean_text(value, _STRING_LIMITS[field]) or None
            continue

        if field in _BOOL_FIELDS:
            parsed = parse_bool(value)
            if parsed is None:
                errors.append(f'{field} must be true or false.')
                continue
            court_data[field] = parsed

    return court_data, errors


def apply_changes(record, data):
    for field, value in data.items():
        setattr(record, field, value)
