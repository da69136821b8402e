"""Disaster report routes.

Citizens file reports (optionally geotagged), admins verify or reject them,
and the landing page asks for verified reports near the user.
"""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import and_, or_
from reliefnet import db
from reliefnet.models import Report, ReportStatus
from reliefnet.services import document_store
from reliefnet.services.geofence import (
    InvalidCoordinateError,
    InvalidRadiusError,
    filter_nearby,
    get_bounding_box,
    longitude_ranges,
    validate_radius,
)
from reliefnet.services.translation import translate_report
from reliefnet.utils import token_required, admin_required, clean_text, json_object, parse_coordinate, parse_language
import logging

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__)

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000


def _serialize(reports, lang):
    return [translate_report(r.to_dict(), lang) for r in reports]


def _find_reports_within_radius(origin, radius_km, require_verified=True):
    """Reports within radius_km of origin as (report, distance) pairs, closest first.

    Uses bounding box pre-filter + Haversine exact distance.
    """
    validate_radius(radius_km)
    min_lat, max_lat, min_lng, max_lng = get_bounding_box(origin.latitude, origin.longitude, radius_km)
    query = Report.query.filter(
        Report.latitude.isnot(None),
        Report.longitude.isnot(None),
        Report.latitude >= min_lat,
        Report.latitude <= max_lat,
        or_(*[
            and_(Report.longitude >= low, Report.longitude <= high)
            for low, high in longitude_ranges(min_lng, max_lng)
        ]),
    )
    if require_verified:
        query = query.filter(Report.status == ReportStatus.VERIFIED)

    try:
        candidates = query.order_by(Report.created_at.desc()).all()
    except Exception as e:
        logger.error(f"Error loading nearby reports: {e}")
        db.session.rollback()
        return []

    return filter_nearby(origin, candidates, radius_km, require_verified=require_verified)


@reports_bp.route('', methods=['GET'])
def list_reports():
    """List reports, newest first.

    Query params:
        - status: pending | verified | rejected
        - lang: translate title/description into this language
    """
    status = request.args.get('status')
    if status and status not in ReportStatus.ALL:
        return jsonify({'error': 'Invalid status'}), 400

    lang = parse_language(request.args.get('lang'))
    reports = document_store.query(
        'reports',
        filters={'status': status} if status else None,
        order_by='created_at',
        descending=True,
    )
    return jsonify({'reports': _serialize(reports, lang), 'total': len(reports)}), 200


@reports_bp.route('/nearby', methods=['GET'])
def nearby_reports():
    """Verified reports around a position, closest first.

    Query params:
        - lat, lng: user's position (required)
        - radius: search radius in km (default NEARBY_RADIUS_KM)
        - lang: translate title/description into this language
    """
    try:
        origin = parse_coordinate(request.args.get('lat'), request.args.get('lng'))
    except InvalidCoordinateError as e:
        return jsonify({'error': str(e)}), 400
    if origin is None:
        return jsonify({'error': 'lat and lng are required'}), 400

    radius = request.args.get('radius', current_app.config['NEARBY_RADIUS_KM'], type=float)
    lang = parse_language(request.args.get('lang'))

    try:
        matches = _find_reports_within_radius(origin, radius)
    except InvalidRadiusError as e:
        return jsonify({'error': str(e)}), 400

    results = []
    for report, dist in matches:
        report_dict = translate_report(report.to_dict(), lang)
        report_dict['distance'] = round(dist, 2)
        results.append(report_dict)

    return jsonify({
        'reports': results,
        'total': len(results),
        'radius': radius,
    }), 200


@reports_bp.route('/mine', methods=['GET'])
@token_required
def my_reports(current_user_id):
    """Reports filed by the current user, newest first."""
    lang = parse_language(request.args.get('lang'))
    reports = document_store.query(
        'reports',
        filters={'user_id': current_user_id},
        order_by='created_at',
        descending=True,
    )
    return jsonify({'reports': _serialize(reports, lang), 'total': len(reports)}), 200


@reports_bp.route('/<int:report_id>', methods=['GET'])
def get_report(report_id):
    report = document_store.get('reports', report_id)
    if not report:
        return jsonify({'error': 'Report not found'}), 404
    lang = parse_language(request.args.get('lang'))
    return jsonify(translate_report(report.to_dict(), lang)), 200


@reports_bp.route('', methods=['POST'])
@token_required
def create_report(current_user_id):
    """File a new report. It starts out pending with no upvotes."""
    data = json_object()
    if not data:
        return jsonify({'error': 'Request body is required'}), 400

    title = clean_text(data.get('title'))
    description = clean_text(data.get('description'))
    location = clean_text(data.get('location'))
    image_url = clean_text(data.get('image_url'))

    if None in (title, description, location, image_url):
        return jsonify({'error': 'title, description, location and image_url must be strings'}), 400

    if not title or not description or not location:
        return jsonify({'error': 'title, description and location are required'}), 400
    if len(title) > MAX_TITLE_LENGTH:
        return jsonify({'error': f'Title must be less than {MAX_TITLE_LENGTH} characters'}), 400
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return jsonify({'error': f'Description must be less than {MAX_DESCRIPTION_LENGTH} characters'}), 400

    raw = data.get('coordinates') or {}
    if not isinstance(raw, dict):
        return jsonify({'error': 'coordinates must be an object with lat and lng'}), 400
    try:
        coord = parse_coordinate(
            raw.get('lat', data.get('latitude')),
            raw.get('lng', data.get('longitude')),
        )
    except InvalidCoordinateError as e:
        return jsonify({'error': str(e)}), 400

    user = document_store.get('users', current_user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    report = document_store.upsert('reports', None, {
        'user_id': user.id,
        'user_name': user.name,
        'user_email': user.email,
        'title': title,
        'description': description,
        'location': location,
        'latitude': coord.latitude if coord else None,
        'longitude': coord.longitude if coord else None,
        'image_url': image_url or None,
        'status': ReportStatus.PENDING,
        'upvotes': 0,
    })
    logger.info(f"Report {report.id} filed by user {user.id}")

    return jsonify({'message': 'Report submitted', 'report': report.to_dict()}), 201


@reports_bp.route('/<int:report_id>/upvote', methods=['POST'])
@token_required
def upvote_report(current_user_id, report_id):
    report = document_store.increment('reports', report_id, 'upvotes')
    if not report:
        return jsonify({'error': 'Report not found'}), 404
    return jsonify({'upvotes': report.upvotes}), 200


@reports_bp.route('/<int:report_id>/status', methods=['PUT'])
@admin_required
def update_report_status(current_user_id, report_id):
    """Verify, reject or reset a report, with optional remarks for the reporter."""
    data = json_object()
    status = data.get('status')
    if status not in ReportStatus.ALL:
        return jsonify({'error': f"status must be one of {', '.join(ReportStatus.ALL)}"}), 400

    report = document_store.get('reports', report_id)
    if not report:
        return jsonify({'error': 'Report not found'}), 404

    remarks = data.get('remarks')
    report = document_store.upsert('reports', report.id, {
        'status': status,
        'remarks': remarks.strip() if isinstance(remarks, str) and remarks.strip() else report.remarks,
    })
    logger.info(f"Report {report.id} marked {status} by admin {current_user_id}")

    return jsonify({'message': 'Report status updated', 'report': report.to_dict()}), 200


@reports_bp.route('/<int:report_id>', methods=['DELETE'])
@admin_required
def delete_report(current_user_id, report_id):
    if not document_store.delete('reports', report_id):
        return jsonify({'error': 'Report not found'}), 404
    logger.info(f"Report {report_id} deleted by admin {current_user_id}")
    return jsonify({'message': 'Report deleted'}), 200
