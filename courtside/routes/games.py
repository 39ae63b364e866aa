from flask import Blueprint, request, jsonify
from courtside.app import broadcast_park_update
from courtside.auth_utils import login_required
from courtside.services import get_services
from courtside.services.park_payloads import parse_int
from courtside.time_utils import parse_iso_datetime

games_bp = Blueprint('games', __name__)


def _id_list(raw_value):
    if not isinstance(raw_value, list):
        return []
    return [value for value in (parse_int(item) for item in raw_value) if value]


@games_bp.route('', methods=['GET'])
def list_games():
    park_id = parse_int(request.args.get('park_id'))
    if not park_id:
        return jsonify({'error': 'park_id is required'}), 400
    games = get_services().games.get_games_by_park(park_id)
    return jsonify({'games': [g.to_dict() for g in games]})


@games_bp.route('', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    park_id = parse_int(data.get('park_id'))
    if not park_id:
        return jsonify({'error': 'park_id is required'}), 400
    scheduled_time = parse_iso_datetime(data.get('scheduled_time'))
    if scheduled_time is None:
        return jsonify({'error': 'scheduled_time must be an ISO-8601 datetime'}), 400

    game = get_services().games.create_game(
        park_id, request.current_user, scheduled_time,
        max_players=data.get('max_players'),
        court_id=parse_int(data.get('court_id')),
        sport_type=data.get('sport_type'),
        skill_level=data.get('skill_level'),
        notes=data.get('notes'),
    )
    broadcast_park_update(park_id, 'game_created', game_id=game.id)
    return jsonify({'game': game.to_dict()}), 201


@games_bp.route('/my', methods=['GET'])
@login_required
def my_games():
    games = get_services().games.get_user_games(request.current_user.id)
    return jsonify({'games': [g.to_dict() for g in games]})


@games_bp.route('/upcoming', methods=['GET'])
def upcoming_games():
    limit = parse_int(request.args.get('limit')) or 20
    games = get_services().games.get_upcoming_games(limit=max(1, min(limit, 100)))
    return jsonify({'games': [g.to_dict() for g in games]})


@games_bp.route('/<int:game_id>', methods=['GET'])
def get_game(game_id):
    return jsonify({'game': get_services().games.get_game(game_id).to_dict()})


@games_bp.route('/<int:game_id>', methods=['PUT'])
@login_required
def update_game(game_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    scheduled_time = None
    if 'scheduled_time' in data:
        scheduled_time = parse_iso_datetime(data.get('scheduled_time'))
        if scheduled_time is None:
            return jsonify({'error': 'scheduled_time must be an ISO-8601 datetime'}), 400
    game = get_services().games.update_game(
        game_id, request.current_user.id,
        scheduled_time=scheduled_time,
        max_players=data.get('max_players'),
        skill_level=data.get('skill_level'),
        notes=data.get('notes'),
    )
    broadcast_park_update(game.park_id, 'game_updated', game_id=game.id)
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    services = get_services()
    park_id = services.games.get_game(game_id).park_id
    services.games.delete_game(game_id, request.current_user)
    broadcast_park_update(park_id, 'game_deleted', game_id=game_id)
    return jsonify({'message': 'Game deleted'})


@games_bp.route('/<int:game_id>/join', methods=['POST'])
@login_required
def join_game(game_id):
    user = request.current_user
    game = get_services().games.join_game(game_id, user.id, user.public_name)
    broadcast_park_update(game.park_id, 'game_joined', game_id=game.id)
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>/leave', methods=['POST'])
@login_required
def leave_game(game_id):
    game = get_services().games.leave_game(game_id, request.current_user.id)
    broadcast_park_update(game.park_id, 'game_left', game_id=game.id)
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    data = request.get_json(silent=True) or {}
    game, invite = get_services().games.start_playing_now(
        game_id, request.current_user,
        friend_ids=_id_list(data.get('friend_ids')),
        group_ids=_id_list(data.get('group_ids')),
    )
    broadcast_park_update(game.park_id, 'game_started', game_id=game.id)
    return jsonify({
        'game': game.to_dict(),
        'invite': invite.to_dict() if invite else None,
    })


@games_bp.route('/<int:game_id>/complete', methods=['POST'])
@login_required
def complete_game(game_id):
    game = get_services().games.complete_game(game_id, request.current_user.id)
    broadcast_park_update(game.park_id, 'game_completed', game_id=game.id)
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>/cancel', methods=['POST'])
@login_required
def cancel_game(game_id):
    game = get_services().games.cancel_game(game_id, request.current_user.id)
    broadcast_park_update(game.park_id, 'game_cancelled', game_id=game.id)
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>/invite', methods=['POST'])
@login_required
def invite_to_game(game_id):
    data = request.get_json(silent=True) or {}
    invite = get_services().games.invite_to_game(
        game_id, request.current_user,
        friend_ids=_id_list(data.get('friend_ids')),
        group_ids=_id_list(data.get('group_ids')),
    )
    return jsonify({'invite': invite.to_dict()}), 201
