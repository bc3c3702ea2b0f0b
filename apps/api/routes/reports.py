"""Hazard report routes."""
from flask import Blueprint, jsonify, request

from apps.api.utils import reports
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.validators import page_limit

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


@reports_bp.route('/types', methods=['GET'])
def list_types():
    return jsonify({'types': [t.to_dict() for t in reports.list_report_types()]}), 200


@reports_bp.route('', methods=['GET'])
def list_reports():
    """Reports visible to the caller; anonymous callers see acknowledged and resolved only."""
    rows = reports.list_reports(
        current_actor(),
        barangay_id=request.args.get('barangay_id', type=int),
        status=request.args.get('status'),
        limit=page_limit(request.args.get('limit', type=int), 100, 500),
    )
    return jsonify({'count': len(rows), 'reports': [r.to_dict() for r in rows]}), 200


@reports_bp.route('/<int:report_id>', methods=['GET'])
def get_report(report_id):
    return jsonify(reports.get_report(current_actor(), report_id).to_dict()), 200


@reports_bp.route('', methods=['POST'])
@actor_required
def create_report():
    report = reports.create_report(current_actor(), request.get_json(silent=True) or {})
    return jsonify({'message': 'Report submitted', 'report': report.to_dict()}), 201


@reports_bp.route('/<int:report_id>/status', methods=['PATCH', 'POST'])
@actor_required
def update_status(report_id):
    data = request.get_json(silent=True) or {}
    report = reports.update_report_status(current_actor(), report_id, data.get('status'))
    return jsonify({'message': 'Report updated', 'report': report.to_dict()}), 200


@reports_bp.route('/<int:report_id>/notes', methods=['GET'])
@actor_required
def list_notes(report_id):
    notes = reports.list_report_notes(current_actor(), report_id)
    return jsonify({'notes': [n.to_dict() for n in notes]}), 200


@reports_bp.route('/<int:report_id>/notes', methods=['POST'])
@actor_required
def add_note(report_id):
    data = request.get_json(silent=True) or {}
    note = reports.add_report_note(current_actor(), report_id, data.get('body'))
    return jsonify({'message': 'Note added', 'note': note.to_dict()}), 201
