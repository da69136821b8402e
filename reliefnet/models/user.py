"""User model for authentication and role management."""

from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from reliefnet import db


class UserRole:
    USER = 'user'
    ADMIN = 'admin'

    ALL = (USER, ADMIN)


class User(db.Model):
    """Citizen, donor or administrator account."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)  # NULL for Firebase-only accounts
    firebase_uid = db.Column(db.String(128), unique=True, nullable=True, index=True)
    role = db.Column(db.String(20), default=UserRole.USER, nullable=False)
    avatar = db.Column(db.String(500), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    preferred_language = db.Column(db.String(5), default='en', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    reports = db.relationship('Report', backref='author', lazy=True)
    donations = db.relationship('Donation', backref='donor', lazy=True)

    def set_password(self, password):
        """Hash and set the user password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if the provided password matches the hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'avatar': self.avatar,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'preferred_language': self.preferred_language,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'
