import re

from flask import Blueprint, request, jsonify
from flask_socketio import emit, join_room, leave_room
from courtside.app import db, socketio
from courtside.auth_utils import get_user_from_token, login_required
from courtside.models import FriendGroup
from courtside.services import get_services
from courtside.services.park_payloads import parse_int

groups_bp = Blueprint('groups', __name__)
_ROOM_PATTERN = re.compile(r'^group_(\d+)$')


def _json_payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@groups_bp.route('', methods=['GET'])
@login_required
def my_groups():
    groups = get_services().social.groups_for_user(request.current_user.id)
    return jsonify({'groups': [g.to_dict() for g in groups]})


@groups_bp.route('', methods=['POST'])
@login_required
def create_group():
    data = _json_payload()
    member_ids = data.get('member_ids') or []
    if not isinstance(member_ids, list):
        return jsonify({'error': 'member_ids must be a list'}), 400
    group = get_services().social.create_group(
        request.current_user, data.get('name'), member_ids
    )
    return jsonify({'group': group.to_dict()}), 201


@groups_bp.route('/<int:group_id>', methods=['GET'])
@login_required
def get_group(group_id):
    group = get_services().social.get_group(group_id, request.current_user.id)
    return jsonify({'group': group.to_dict()})


@groups_bp.route('/<int:group_id>', methods=['PUT'])
@login_required
def rename_group(group_id):
    group = get_services().social.rename_group(
        group_id, request.current_user.id, _json_payload().get('name')
    )
    return jsonify({'group': group.to_dict()})


@groups_bp.route('/<int:group_id>', methods=['DELETE'])
@login_required
def delete_group(group_id):
    get_services().social.delete_group(group_id, request.current_user.id)
    return jsonify({'message': 'Group deleted'})


@groups_bp.route('/<int:group_id>/members', methods=['POST'])
@login_required
def add_member(group_id):
    member_id = parse_int(_json_payload().get('user_id'))
    if not member_id:
        return jsonify({'error': 'user_id is required'}), 400
    group = get_services().social.add_group_member(
        group_id, request.current_user.id, member_id
    )
    return jsonify({'group': group.to_dict()})


@groups_bp.route('/<int:group_id>/members/<int:member_id>', methods=['DELETE'])
@login_required
def remove_member(group_id, member_id):
    group = get_services().social.remove_group_member(
        group_id, request.current_user.id, member_id
    )
    return jsonify({'group': group.to_dict()})


@groups_bp.route('/<int:group_id>/messages', methods=['GET'])
@login_required
def get_messages(group_id):
    messages = get_services().social.group_messages(group_id, request.current_user.id)
    return jsonify({'messages': [m.to_dict() for m in messages]})


@groups_bp.route('/<int:group_id>/messages', methods=['POST'])
@login_required
def send_message(group_id):
    message = get_services().social.post_group_message(
        group_id, request.current_user, _json_payload().get('content')
    )
    socketio.emit('group_message', message.to_dict(), room=f'group_{group_id}')
    return jsonify({'message': message.to_dict()}), 201


# WebSocket event handlers
def _authorize_socket_join(room, token):
    user = get_user_from_token(token)
    if not user:
        return None, 'Authentication required'

    room_match = _ROOM_PATTERN.match(room)
    if not room_match:
        return None, 'Invalid room'

    group = db.session.get(FriendGroup, int(room_match.group(1)))
    if not group:
        return None, 'Group not found'
    if user.id not in group.member_ids:
        return None, 'Forbidden room'
    return user, None


@socketio.on('join')
def on_join(data):
    payload = data if isinstance(data, dict) else {}
    room = str(payload.get('room') or '').strip()
    token = payload.get('token') or request.args.get('token') or ''
    _, error = _authorize_socket_join(room, token)
    if error:
        emit('status', {'error': error})
        return

    join_room(room)
    emit('status', {'message': f'Joined {room}'})


@socketio.on('leave')
def on_leave(data):
    room = data.get('room', '') if isinstance(data, dict) else ''
    if room:
        leave_room(room)
