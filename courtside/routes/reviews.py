from flask import Blueprint, request, jsonify
from courtside.app import broadcast_park_update
from courtside.auth_utils import login_required
from courtside.services import get_services
from courtside.services.park_payloads import parse_int

reviews_bp = Blueprint('reviews', __name__)


@reviews_bp.route('/park/<int:park_id>', methods=['GET'])
def park_reviews(park_id):
    reviews = get_services().social.reviews_for_park(park_id)
    return jsonify({'reviews': [r.to_dict() for r in reviews]})


@reviews_bp.route('', methods=['POST'])
@login_required
def add_review():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    park_id = parse_int(data.get('park_id'))
    if not park_id:
        return jsonify({'error': 'park_id is required'}), 400
    review = get_services().social.add_review(
        park_id, request.current_user, data.get('rating'), data.get('comment')
    )
    broadcast_park_update(park_id, 'review_added')
    return jsonify({'review': review.to_dict()}), 201


@reviews_bp.route('/<int:review_id>', methods=['PUT'])
@login_required
def update_review(review_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    review = get_services().social.update_review(
        review_id, request.current_user,
        rating=data.get('rating'), comment=data.get('comment'),
    )
    broadcast_park_update(review.park_id, 'review_updated')
    return jsonify({'review': review.to_dict()})


@reviews_bp.route('/<int:review_id>', methods=['DELETE'])
@login_required
def delete_review(review_id):
    get_services().social.delete_review(review_id, request.current_user)
    return jsonify({'message': 'Review deleted'})
