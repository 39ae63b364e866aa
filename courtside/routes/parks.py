from flask import Blueprint, current_app, request, jsonify
from courtside.app import broadcast_park_update
from courtside.auth_utils import login_required, admin_required, optional_current_user
from courtside.services import get_services
from courtside.services.park_payloads import parse_float, parse_int

parks_bp = Blueprint('parks', __name__)


def _json_payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _prune_queues(park_id):
    get_services().queue.cleanup_expired_queue_players(park_id)


def _park_response(park):
    """Serialize a park with its courts, after dropping expired got-next entries."""
    _prune_queues(park.id)
    return park.to_dict()


def _court_response(court):
    _prune_queues(court.park_id)
    return court.to_dict()


# ── Parks ─────────────────────────────────────────────────────────────

@parks_bp.route('', methods=['GET'])
def list_parks():
    services = get_services()
    lat = parse_float(request.args.get('lat'))
    lng = parse_float(request.args.get('lng'))
    if lat is not None and lng is not None:
        radius = parse_float(request.args.get('radius'))
        if radius is None or radius <= 0:
            radius = float(current_app.config.get('NEARBY_DEFAULT_RADIUS_MILES', 25))
        nearby = services.parks.get_nearby_parks(lat, lng, radius)
        parks = []
        for distance, park in nearby:
            data = _park_response(park)
            data['distance_miles'] = round(distance, 2)
            parks.append(data)
        return jsonify({'parks': parks})

    parks = services.parks.search_parks(
        query_text=request.args.get('q', ''),
        city=request.args.get('city', ''),
        state=request.args.get('state', ''),
    )
    return jsonify({'parks': [_park_response(p) for p in parks]})


@parks_bp.route('', methods=['POST'])
@login_required
def create_park():
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    park = get_services().parks.create_park(data, request.current_user)
    if park.approved:
        broadcast_park_update(park.id, 'park_created')
    return jsonify({'park': park.to_dict()}), 201


@parks_bp.route('/pending', methods=['GET'])
@admin_required
def pending_parks():
    parks = get_services().parks.get_pending_parks()
    return jsonify({'parks': [_park_response(p) for p in parks]})


@parks_bp.route('/<int:park_id>', methods=['GET'])
def get_park(park_id):
    park = get_services().parks.get_park(park_id, viewer=optional_current_user())
    return jsonify({'park': _park_response(park)})


@parks_bp.route('/<int:park_id>', methods=['PUT'])
@login_required
def update_park(park_id):
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    park = get_services().parks.update_park(park_id, data, request.current_user)
    broadcast_park_update(park.id, 'park_updated')
    return jsonify({'park': _park_response(park)})


@parks_bp.route('/<int:park_id>', methods=['DELETE'])
@admin_required
def delete_park(park_id):
    get_services().parks.delete_park(park_id, request.current_user)
    broadcast_park_update(park_id, 'park_deleted')
    return jsonify({'message': 'Park deleted'})


@parks_bp.route('/<int:park_id>/detail', methods=['GET'])
def park_detail(park_id):
    detail = get_services().park_detail.load(park_id, viewer=optional_current_user())
    return jsonify(detail)


@parks_bp.route('/<int:park_id>/approve', methods=['POST'])
@admin_required
def approve_park(park_id):
    data = _json_payload() or {}
    park = get_services().parks.approve_park(park_id, request.current_user, data.get('message'))
    broadcast_park_update(park.id, 'park_approved')
    return jsonify({'park': _park_response(park)})


@parks_bp.route('/<int:park_id>/deny', methods=['POST'])
@admin_required
def deny_park(park_id):
    data = _json_payload() or {}
    park = get_services().parks.deny_park(park_id, request.current_user, data.get('message'))
    return jsonify({'park': _park_response(park)})


@parks_bp.route('/<int:park_id>/reconcile', methods=['POST'])
@admin_required
def reconcile_park(park_id):
    services = get_services()
    changed = services.occupancy.reconcile_park(park_id)
    park = services.parks.get_park(park_id, viewer=request.current_user)
    if changed:
        broadcast_park_update(park_id, 'occupancy_reconciled')
    return jsonify({'changed': changed, 'park': _park_response(park)})


# ── Courts ────────────────────────────────────────────────────────────

@parks_bp.route('/<int:park_id>/courts', methods=['POST'])
@login_required
def add_court(park_id):
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    court = get_services().parks.add_court(park_id, data, request.current_user)
    broadcast_park_update(park_id, 'court_added', court_id=court.id)
    return jsonify({'court': court.to_dict()}), 201


@parks_bp.route('/<int:park_id>/courts/<int:court_id>', methods=['PUT'])
@login_required
def update_court(park_id, court_id):
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    court = get_services().parks.update_court(park_id, court_id, data, request.current_user)
    broadcast_park_update(park_id, 'court_updated', court_id=court.id)
    return jsonify({'court': _court_response(court)})


@parks_bp.route('/<int:park_id>/courts/<int:court_id>', methods=['DELETE'])
@login_required
def delete_court(park_id, court_id):
    get_services().parks.delete_court(park_id, court_id, request.current_user)
    broadcast_park_update(park_id, 'court_deleted', court_id=court_id)
    return jsonify({'message': 'Court deleted'})


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/player-count', methods=['PUT'])
@login_required
def update_player_count(park_id, court_id):
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    game_format = data.get('game_format') or None
    count = parse_int(data.get('player_count'))
    if count is None and game_format is None:
        return jsonify({'error': 'player_count must be an integer'}), 400
    court = get_services().occupancy.update_court_player_count(
        park_id, court_id, count, game_format=game_format,
    )
    broadcast_park_update(park_id, 'player_count', court_id=court.id,
                          player_count=court.player_count)
    return jsonify({'court': _court_response(court)})


# ── Got-next queue ────────────────────────────────────────────────────

def _queue_response(park_id, court_id):
    queue = get_services().queue.get_queue(park_id, court_id)
    return {'court_id': court_id, 'queue': [e.to_dict() for e in queue]}


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/queue', methods=['GET'])
def get_queue(park_id, court_id):
    return jsonify(_queue_response(park_id, court_id))


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/queue/join', methods=['POST'])
@login_required
def join_queue(park_id, court_id):
    user = request.current_user
    get_services().queue.join_queue(park_id, court_id, user.id, user.public_name)
    broadcast_park_update(park_id, 'queue_joined', court_id=court_id, user_id=user.id)
    return jsonify(_queue_response(park_id, court_id))


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/queue/leave', methods=['POST'])
@login_required
def leave_queue(park_id, court_id):
    user = request.current_user
    removed = get_services().queue.leave_queue(park_id, court_id, user.id)
    if removed:
        broadcast_park_update(park_id, 'queue_left', court_id=court_id, user_id=user.id)
    return jsonify({'removed': removed, **_queue_response(park_id, court_id)})


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/queue/refresh', methods=['POST'])
@login_required
def refresh_queue(park_id, court_id):
    entry = get_services().queue.refresh_queue_activity(
        park_id, court_id, request.current_user.id
    )
    return jsonify({'entry': entry.to_dict()})


@parks_bp.route('/<int:park_id>/courts/<int:court_id>/queue/mark-playing', methods=['POST'])
@login_required
def mark_playing(park_id, court_id):
    data = _json_payload() or {}
    acting = request.current_user
    user_id = acting.id
    user_name = acting.public_name
    if data.get('user_id') is not None:
        user_id = parse_int(data.get('user_id'))
        if user_id is None:
            return jsonify({'error': 'user_id must be an integer'}), 400
        user_name = str(data.get('user_name') or '').strip()

    result = get_services().queue.mark_as_playing(
        park_id, court_id, user_id, user_name, acting.id
    )
    broadcast_park_update(park_id, 'now_playing', court_id=court_id, user_id=user_id)
    check_in = result['check_in']
    return jsonify({
        'removed_from_queue': result['removed_from_queue'],
        'check_in': check_in.to_dict() if check_in else None,
        **_queue_response(park_id, court_id),
    })


@parks_bp.route('/<int:park_id>/queue/cleanup', methods=['POST'])
@login_required
def cleanup_queues(park_id):
    removed = get_services().queue.cleanup_expired_queue_players(park_id)
    if removed:
        broadcast_park_update(park_id, 'queue_pruned', removed=removed)
    return jsonify({'removed': removed})
