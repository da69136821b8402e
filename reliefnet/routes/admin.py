"""Admin routes for platform management."""
from flask import Blueprint, jsonify
from sqlalchemy import func
from reliefnet import db
from reliefnet.models import Report, ReportStatus, Donation, UserRole
from reliefnet.services import document_store
from reliefnet.utils import admin_required, json_object
import logging

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


# ============================================================================
# DASHBOARD STATS
# ============================================================================

@admin_bp.route('/stats', methods=['GET'])
@admin_required
def get_stats(current_user_id):
    """Overview counts for the admin dashboard."""
    try:
        counts = dict(
            db.session.query(Report.status, func.count(Report.id)).group_by(Report.status).all()
        )
        donation_total = db.session.query(func.coalesce(func.sum(Donation.amount), 0)).scalar()

        return jsonify({
            'reports': {
                'total': sum(counts.values()),
                'pending': counts.get(ReportStatus.PENDING, 0),
                'verified': counts.get(ReportStatus.VERIFIED, 0),
                'rejected': counts.get(ReportStatus.REJECTED, 0),
            },
            'donations': {
                'count': Donation.query.count(),
                'total_amount': round(float(donation_total), 2),
            },
        }), 200
    except Exception:
        db.session.rollback()
        raise


# ============================================================================
# USER MANAGEMENT
# ============================================================================

@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users(current_user_id):
    users = document_store.query('users', order_by='created_at', descending=True)
    return jsonify({'users': [u.to_dict() for u in users], 'total': len(users)}), 200


@admin_bp.route('/users/<int:user_id>/role', methods=['PUT'])
@admin_required
def update_user_role(current_user_id, user_id):
    """Promote a user to admin or demote back to user."""
    data = json_object()
    role = data.get('role')
    if role not in UserRole.ALL:
        return jsonify({'error': f"role must be one of {', '.join(UserRole.ALL)}"}), 400

    if user_id == current_user_id and role != UserRole.ADMIN:
        return jsonify({'error': 'You cannot remove your own admin role'}), 400

    user = document_store.get('users', user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    user = document_store.upsert('users', user.id, {'role': role})
    logger.info(f"User {user.id} role set to {role} by admin {current_user_id}")
    return jsonify({'message': 'Role updated', 'user': user.to_dict()}), 200
