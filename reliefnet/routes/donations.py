"""Donation routes: donors log contributions, admins track their status."""

from flask import Blueprint, jsonify
from reliefnet.models import Donation
from reliefnet.services import document_store
from reliefnet.utils import token_required, token_optional, admin_required, clean_text, json_object
import logging

logger = logging.getLogger(__name__)

donations_bp = Blueprint('donations', __name__)

MAX_DONATION_AMOUNT = 10_000_000


def _parse_amount(value):
    """Positive amount or None."""
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if amount <= 0 or amount > MAX_DONATION_AMOUNT or amount != amount:
        return None
    return round(amount, 2)


@donations_bp.route('', methods=['POST'])
@token_optional
def create_donation(current_user_id):
    """Log a donation. Anonymous donors must supply their name."""
    data = json_object()
    if not data:
        return jsonify({'error': 'Request body is required'}), 400

    amount = _parse_amount(data.get('amount'))
    if amount is None:
        return jsonify({'error': 'Amount must be a positive number'}), 400

    campaign = clean_text(data.get('campaign'))
    donor_name = clean_text(data.get('donor_name'))
    email = clean_text(data.get('email'))
    if None in (campaign, donor_name, email):
        return jsonify({'error': 'campaign, donor_name and email must be strings'}), 400
    if not campaign:
        return jsonify({'error': 'campaign is required'}), 400

    user = document_store.get('users', current_user_id) if current_user_id else None
    donor_name = donor_name or (user.name if user else '')
    if not donor_name:
        return jsonify({'error': 'donor_name is required'}), 400

    donation = document_store.upsert('donations', None, {
        'user_id': user.id if user else None,
        'donor_name': donor_name,
        'user_email': email or (user.email if user else None),
        'amount': amount,
        'campaign': campaign,
        'status': Donation.DEFAULT_STATUS,
    })
    logger.info(f"Donation {donation.id} of {amount} to '{campaign}'")

    return jsonify({'message': 'Donation recorded', 'donation': donation.to_dict()}), 201


@donations_bp.route('/mine', methods=['GET'])
@token_required
def my_donations(current_user_id):
    donations = document_store.query(
        'donations',
        filters={'user_id': current_user_id},
        order_by='created_at',
        descending=True,
    )
    return jsonify({
        'donations': [d.to_dict() for d in donations],
        'total': len(donations),
        'total_amount': round(sum(d.amount for d in donations), 2),
    }), 200


@donations_bp.route('', methods=['GET'])
@admin_required
def list_donations(current_user_id):
    """All donations, newest first (admin)."""
    donations = document_store.query('donations', order_by='created_at', descending=True)
    return jsonify({
        'donations': [d.to_dict() for d in donations],
        'total': len(donations),
    }), 200


@donations_bp.route('/<int:donation_id>/status', methods=['PUT'])
@admin_required
def update_donation_status(current_user_id, donation_id):
    """Set a free-text status such as 'Received' or 'Delivered' (admin)."""
    data = json_object()
    status = clean_text(data.get('status'))
    if not status or len(status) > 50:
        return jsonify({'error': 'status must be 1-50 characters'}), 400

    donation = document_store.get('donations', donation_id)
    if not donation:
        return jsonify({'error': 'Donation not found'}), 404

    donation = document_store.upsert('donations', donation.id, {'status': status})
    return jsonify({'message': 'Donation status updated', 'donation': donation.to_dict()}), 200


@donations_bp.route('/stats', methods=['GET'])
@admin_required
def donation_stats(current_user_id):
    """Totals per campaign, largest first (admin)."""
    donations = document_store.query('donations')

    by_campaign = {}
    for donation in donations:
        campaign = donation.campaign or 'Unknown'
        by_campaign[campaign] = by_campaign.get(campaign, 0) + (donation.amount or 0)

    campaigns = sorted(by_campaign.items(), key=lambda item: item[1], reverse=True)
    return jsonify({
        'campaigns': [{'campaign': name, 'amount': round(amount, 2)} for name, amount in campaigns],
        'total_amount': round(sum(by_campaign.values()), 2),
        'count': len(donations),
    }), 200
