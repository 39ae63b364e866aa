from flask import Blueprint, request, jsonify
from courtside.auth_utils import login_required
from courtside.services import get_services

invites_bp = Blueprint('invites', __name__)


@invites_bp.route('', methods=['GET'])
@login_required
def my_invites():
    invites = get_services().social.invites_for_user(request.current_user.id)
    return jsonify({'invites': [i.to_dict() for i in invites]})


@invites_bp.route('/<int:invite_id>', methods=['DELETE'])
@login_required
def dismiss_invite(invite_id):
    get_services().social.dismiss_invite(invite_id, request.current_user.id)
    return jsonify({'message': 'Invite dismissed'})
