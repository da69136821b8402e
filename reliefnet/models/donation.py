"""Donation model."""

from datetime import datetime
from reliefnet import db


class Donation(db.Model):
    """Contribution logged against a relief campaign."""

    __tablename__ = 'donations'

    DEFAULT_STATUS = 'Received'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    donor_name = db.Column(db.String(120), nullable=False)
    user_email = db.Column(db.String(120), nullable=True)
    amount = db.Column(db.Float, nullable=False)
    campaign = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(50), default=DEFAULT_STATUS, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self):
        """Convert donation to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'donor_name': self.donor_name,
            'user_email': self.user_email,
            'amount': self.amount,
            'campaign': self.campaign,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Donation {self.id}: {self.amount} to {self.campaign}>'
