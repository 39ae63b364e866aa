from flask import Blueprint, request, jsonify
from courtside.app import broadcast_park_update
from courtside.auth_utils import login_required
from courtside.services import get_services
from courtside.services.park_payloads import parse_bool, parse_int

checkins_bp = Blueprint('checkins', __name__)


@checkins_bp.route('', methods=['POST'])
@login_required
def check_in():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    park_id = parse_int(data.get('park_id'))
    court_number = parse_int(data.get('court_number'))
    if not park_id or not court_number:
        return jsonify({'error': 'park_id and court_number are required'}), 400

    in_queue = bool(parse_bool(data.get('in_queue')))
    prefer_doubles = parse_bool(data.get('prefer_doubles'))
    player_count = data.get('player_count')

    services = get_services()
    user = request.current_user
    check_in = services.checkins.create_check_in(
        park_id, user.id, user.public_name, court_number,
        player_count=player_count, in_queue=in_queue,
        prefer_doubles=prefer_doubles, notes=data.get('notes'),
    )
    queue_entry = None
    if check_in.in_queue:
        court = services.parks.get_park(park_id, viewer=user).court_by_number(court_number)
        queue_entry = services.queue.join_queue(park_id, court.id, user.id, user.public_name)

    broadcast_park_update(park_id, 'check_in', court_number=court_number, user_id=user.id)
    return jsonify({
        'check_in': check_in.to_dict(),
        'queue_entry': queue_entry.to_dict() if queue_entry else None,
    }), 201


@checkins_bp.route('/<int:check_in_id>/checkout', methods=['POST'])
@login_required
def check_out(check_in_id):
    check_in = get_services().checkins.check_out(check_in_id, request.current_user.id)
    broadcast_park_update(check_in.park_id, 'check_out',
                          court_number=check_in.court_number,
                          user_id=check_in.user_id)
    return jsonify({'check_in': check_in.to_dict()})


@checkins_bp.route('/<int:check_in_id>', methods=['DELETE'])
@login_required
def delete_check_in(check_in_id):
    park_id = get_services().checkins.delete_check_in(check_in_id, request.current_user.id)
    broadcast_park_update(park_id, 'check_in_deleted')
    return jsonify({'message': 'Check-in deleted'})


@checkins_bp.route('/active', methods=['GET'])
@login_required
def active_check_in():
    check_in = get_services().checkins.get_active_check_in(request.current_user.id)
    return jsonify({'check_in': check_in.to_dict() if check_in else None})


@checkins_bp.route('/park/<int:park_id>', methods=['GET'])
def park_check_ins(park_id):
    check_ins = get_services().checkins.get_park_check_ins(park_id)
    return jsonify({'check_ins': [c.to_dict() for c in check_ins]})


@checkins_bp.route('/history', methods=['GET'])
@login_required
def check_in_history():
    ledger = get_services().checkins
    limit = parse_int(request.args.get('limit'))
    if request.args.get('group') == 'park':
        history = ledger.history_by_park(request.current_user.id, limit)
    else:
        history = ledger.get_user_check_in_history(request.current_user.id, limit)
    return jsonify({'check_ins': [c.to_dict() for c in history]})
