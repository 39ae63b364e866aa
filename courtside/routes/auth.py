import logging
import re

from flask import Blueprint, request, jsonify, current_app
from werkzeug.security import generate_password_hash, check_password_hash
from courtside.auth_utils import generate_token, login_required, csrf_token_for_bearer
from courtside.errors import Conflict, ValidationError
from courtside.models import CheckIn, FavoritePark, User
from courtside.services import get_services

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,80}$')
PROFILE_FIELD_LIMITS = {'display_name': 120, 'photo_url': 500}


def _admin_emails():
    raw = str(current_app.config.get('ADMIN_EMAILS') or '')
    return {part.strip().lower() for part in raw.split(',') if part.strip()}


def _check_password(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        raise ValidationError('Password must be at least 8 characters long')
    if not (re.search(r'[A-Za-z]', password) and re.search(r'\d', password)):
        raise ValidationError('Password must include at least one letter and one number')
    return password


def _session_payload(user, status=200):
    return jsonify({'token': generate_token(user.id), 'user': user.to_dict()}), status


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = str(data.get('username') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    if not username or not email or not data.get('password'):
        raise ValidationError('Username, email, and password are required')
    if not USERNAME_PATTERN.match(username):
        raise ValidationError('Username may use letters, numbers, dots, dashes and underscores')
    password = _check_password(data.get('password'))

    directory = get_services().social.users
    if directory.by_username(username):
        raise Conflict('Username already taken')
    if directory.by_email(email):
        raise Conflict('Email already registered')

    user = directory.add(User(
        username=username,
        email=email,
        password_hash=generate_password_hash(password),
        display_name=str(data.get('display_name') or '').strip()[:120],
        is_admin=email in _admin_emails(),
    ))
    directory.commit()
    logger.info('Registered user %s (admin=%s)', user.id, user.is_admin)
    return _session_payload(user, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = str(data.get('email') or '').strip().lower()
    if not email or not data.get('password'):
        raise ValidationError('Email and password are required')

    directory = get_services().social.users
    user = directory.by_email(email)
    if user is None or not check_password_hash(user.password_hash, str(data['password'])):
        return jsonify({'error': 'Invalid email or password'}), 401

    # ADMIN_EMAILS can change after signup.
    if not user.is_admin and email in _admin_emails():
        user.is_admin = True
        directory.commit()
        logger.info('Granted admin to user %s from ADMIN_EMAILS', user.id)
    return _session_payload(user)


@auth_bp.route('/csrf', methods=['GET'])
@login_required
def get_csrf_token():
    return jsonify({'csrf_token': csrf_token_for_bearer(request.headers.get('Authorization'))})


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    user = request.current_user
    services = get_services()
    active = services.checkins.get_active_check_in(user.id)
    profile = user.to_dict()
    profile.update({
        'total_checkins': CheckIn.query.filter_by(user_id=user.id).count(),
        'friends_count': len(services.social.users.friend_ids(user.id)),
        'favorite_parks_count': FavoritePark.query.filter_by(user_id=user.id).count(),
        'active_check_in': active.to_dict() if active else None,
    })
    return jsonify({'user': profile})


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')

    user = request.current_user
    for field, limit in PROFILE_FIELD_LIMITS.items():
        if field in data:
            setattr(user, field, str(data[field] or '').strip()[:limit])
    get_services().social.users.commit()
    return jsonify({'user': user.to_dict()})
