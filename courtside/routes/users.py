from flask import Blueprint, request, jsonify
from courtside.auth_utils import login_required
from courtside.errors import NotFound
from courtside.models import CheckIn
from courtside.services import get_services
from courtside.services.park_payloads import parse_int

users_bp = Blueprint('users', __name__)


@users_bp.route('/search', methods=['GET'])
@login_required
def search_users():
    query_text = str(request.args.get('q') or '').strip()
    if len(query_text) < 2:
        return jsonify({'users': []})
    social = get_services().social
    users = social.users.search(query_text)
    me = request.current_user.id
    return jsonify({'users': [
        u.to_public_dict() for u in users
        if u.id != me and not social.users.is_either_blocked(me, u.id)
    ]})


@users_bp.route('/<int:user_id>', methods=['GET'])
def get_user_profile(user_id):
    """View another user's public profile."""
    user = get_services().social.users.get(user_id)
    if not user:
        raise NotFound('User not found')
    profile = user.to_public_dict()
    profile['total_checkins'] = CheckIn.query.filter_by(user_id=user.id).count()
    return jsonify({'user': profile})


# ── Friends ───────────────────────────────────────────────────────────

@users_bp.route('/friends', methods=['GET'])
@login_required
def get_friends():
    friends = get_services().social.list_friends(request.current_user.id)
    return jsonify({'friends': [f.to_public_dict() for f in friends]})


@users_bp.route('/friends/request', methods=['POST'])
@login_required
def send_friend_request():
    data = request.get_json(silent=True) or {}
    friend_id = parse_int(data.get('friend_id'))
    if not friend_id:
        return jsonify({'error': 'friend_id is required'}), 400
    friendship = get_services().social.send_friend_request(request.current_user, friend_id)
    return jsonify({'message': 'Friend request sent', 'request_id': friendship.id}), 201


@users_bp.route('/friends/respond', methods=['POST'])
@login_required
def respond_friend_request():
    data = request.get_json(silent=True) or {}
    request_id = parse_int(data.get('request_id'))
    if not request_id:
        return jsonify({'error': 'request_id is required'}), 400
    accept = data.get('action') == 'accept'
    friendship = get_services().social.respond_to_friend_request(
        request.current_user, request_id, accept
    )
    return jsonify({'message': f'Request {friendship.status}'})


@users_bp.route('/friends/pending', methods=['GET'])
@login_required
def get_pending_requests():
    pending = get_services().social.pending_friend_requests(request.current_user.id)
    return jsonify({'requests': [{
        'id': p.id,
        'user': p.user.to_public_dict(),
        'created_at': p.created_at.isoformat() if p.created_at else None,
    } for p in pending]})


@users_bp.route('/friends/<int:friend_id>', methods=['DELETE'])
@login_required
def remove_friend(friend_id):
    get_services().social.remove_friend(request.current_user, friend_id)
    return jsonify({'message': 'Friend removed'})


# ── Blocks ────────────────────────────────────────────────────────────

@users_bp.route('/blocks', methods=['GET'])
@login_required
def get_blocked_users():
    blocked = get_services().social.blocked_users(request.current_user.id)
    return jsonify({'users': [u.to_public_dict() for u in blocked]})


@users_bp.route('/blocks/<int:user_id>', methods=['POST'])
@login_required
def block_user(user_id):
    get_services().social.block_user(request.current_user, user_id)
    return jsonify({'message': 'User blocked'}), 201


@users_bp.route('/blocks/<int:user_id>', methods=['DELETE'])
@login_required
def unblock_user(user_id):
    removed = get_services().social.unblock_user(request.current_user, user_id)
    return jsonify({'removed': removed})


# ── Favorites ─────────────────────────────────────────────────────────

@users_bp.route('/favorites', methods=['GET'])
@login_required
def get_favorites():
    parks = get_services().social.favorite_parks(request.current_user.id)
    return jsonify({'parks': [p.to_dict(include_courts=False) for p in parks]})


@users_bp.route('/favorites/<int:park_id>', methods=['POST'])
@login_required
def add_favorite(park_id):
    get_services().social.add_favorite(request.current_user.id, park_id)
    return jsonify({'is_favorite': True}), 201


@users_bp.route('/favorites/<int:park_id>', methods=['DELETE'])
@login_required
def remove_favorite(park_id):
    get_services().social.remove_favorite(request.current_user.id, park_id)
    return jsonify({'is_favorite': False})
