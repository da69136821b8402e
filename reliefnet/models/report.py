"""Disaster report model."""

from datetime import datetime
from reliefnet import db
from reliefnet.services.geofence import Coordinate


class ReportStatus:
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'

    ALL = (PENDING, VERIFIED, REJECTED)


class Report(db.Model):
    """Incident filed by a citizen, verified or rejected by an admin."""

    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    user_name = db.Column(db.String(120), nullable=False)
    user_email = db.Column(db.String(120), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=False)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    image_url = db.Column(db.Text, nullable=True)  # URL or data URI of the attached photo/video
    status = db.Column(db.String(20), default=ReportStatus.PENDING, nullable=False, index=True)
    remarks = db.Column(db.Text, nullable=True)  # Admin feedback shown to the reporter
    upvotes = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def verified(self):
        return self.status == ReportStatus.VERIFIED

    @property
    def coordinates(self):
        """Coordinate of the incident, or None when it was filed without one."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self):
        """Convert report to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'user_email': self.user_email,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'coordinates': {'lat': self.latitude, 'lng': self.longitude} if self.coordinates else None,
            'image_url': self.image_url,
            'status': self.status,
            'remarks': self.remarks,
            'upvotes': self.upvotes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Report {self.id}: {self.title}>'
