"""Bearer-token identity for the API: JWT issue/verify, CSRF binding, route guards."""
import hashlib
import hmac
from datetime import UTC, datetime, timedelta
from functools import wraps

import jwt
from flask import current_app, jsonify, request

from courtside.app import db
from courtside.models import User

TOKEN_ALGORITHM = 'HS256'
TOKEN_ISSUER = 'courtside'


def generate_token(user_id):
    """Issue a signed JWT naming ``user_id`` as its subject."""
    issued_at = datetime.now(UTC)
    lifetime = timedelta(hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24))
    claims = {
        'sub': str(user_id),
        'iss': TOKEN_ISSUER,
        'iat': issued_at,
        'exp': issued_at + lifetime,
    }
    return jwt.encode(claims, current_app.config['SECRET_KEY'], algorithm=TOKEN_ALGORITHM)


def _bearer_value(raw_value):
    value = str(raw_value or '').strip()
    scheme, _, rest = value.partition(' ')
    if scheme.lower() == 'bearer' and rest:
        return rest.strip()
    return value


def _resolve_user(raw_value):
    """Return ``(user, error)`` for an Authorization header or bare token."""
    token = _bearer_value(raw_value)
    if not token:
        return None, 'Authentication required'
    try:
        claims = jwt.decode(
            token,
            current_app.config['SECRET_KEY'],
            algorithms=[TOKEN_ALGORITHM],
            issuer=TOKEN_ISSUER,
            options={'require': ['sub', 'exp']},
        )
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'

    try:
        user_id = int(claims['sub'])
    except (TypeError, ValueError):
        return None, 'Invalid token'
    user = db.session.get(User, user_id)
    if user is None:
        return None, 'User not found'
    return user, None


def get_user_from_token(token):
    """Used by socket handlers, where the token arrives in the event payload."""
    user, _ = _resolve_user(token)
    return user


def optional_current_user():
    """The caller when a valid bearer token is sent, else None."""
    user, _ = _resolve_user(request.headers.get('Authorization'))
    return user


def csrf_token_for_bearer(auth_header):
    """HMAC of the bearer token; browsers echo it back as X-CSRF-Token."""
    token = _bearer_value(auth_header)
    secret = str(current_app.config.get('SECRET_KEY') or '')
    if not token or not secret:
        return ''
    digest = hmac.new(secret.encode('utf-8'), token.encode('utf-8'), hashlib.sha256)
    return digest.hexdigest()


def csrf_token_matches(auth_header, candidate):
    expected = csrf_token_for_bearer(auth_header)
    provided = str(candidate or '').strip()
    return bool(expected and provided) and hmac.compare_digest(expected, provided)


def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user, error = _resolve_user(request.headers.get('Authorization'))
        if error:
            return jsonify({'error': error}), 401
        request.current_user = user
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Park moderation and report triage are admin only."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user, error = _resolve_user(request.headers.get('Authorization'))
        if error:
            return jsonify({'error': error}), 401
        if not user.is_admin:
            return jsonify({'error': 'Admin access required'}), 403
        request.current_user = user
        return f(*args, **kwargs)
    return decorated
