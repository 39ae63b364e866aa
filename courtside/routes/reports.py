from flask import Blueprint, request, jsonify
from courtside.auth_utils import login_required, admin_required
from courtside.services import get_services

reports_bp = Blueprint('reports', __name__)


@reports_bp.route('', methods=['POST'])
@login_required
def create_report():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    report = get_services().social.create_report(
        request.current_user,
        data.get('target_type'),
        data.get('target_id'),
        data.get('reason'),
        notes=data.get('notes'),
    )
    return jsonify({'report': report.to_dict()}), 201


@reports_bp.route('', methods=['GET'])
@admin_required
def list_reports():
    reports = get_services().social.list_reports(status=request.args.get('status'))
    return jsonify({'reports': [r.to_dict() for r in reports]})


@reports_bp.route('/<int:report_id>', methods=['PUT'])
@admin_required
def update_report(report_id):
    data = request.get_json(silent=True) or {}
    report = get_services().social.update_report_status(report_id, data.get('status'))
    return jsonify({'report': report.to_dict()})
