#!/usr/bin/env python
"""Database initialization script for the ReliefNet backend.

Creates all tables and, when the database is empty, seeds a demo citizen, an
admin and two verified Bangalore reports so the nearby-alerts view has
something to show.

Usage:
    python init_db.py
"""

import os
import sys
from datetime import datetime, timedelta
from reliefnet import create_app, db

SEED_PASSWORD = os.getenv('SEED_PASSWORD', 'reliefnet123')

SEED_REPORTS = [
    {
        'title': 'Severe Waterlogging at Silk Board',
        'description': 'Heavy rains have caused massive waterlogging at Silk Board junction. '
                       'Traffic is completely stalled.',
        'location': 'Silk Board Junction, Bangalore',
        'latitude': 12.9172,
        'longitude': 77.6228,
        'upvotes': 145,
        'age_days': 1,
    },
    {
        'title': 'Tree Fall in Indiranagar',
        'description': 'A large Gulmohar tree fell on 100ft road blocking the service lane.',
        'location': 'Indiranagar 100ft Road, Bangalore',
        'latitude': 12.9784,
        'longitude': 77.6408,
        'upvotes': 89,
        'age_days': 2,
    },
]


def seed(db_session):
    """Insert demo data. Returns False if users already exist."""
    from reliefnet.models import User, UserRole, Report, ReportStatus

    if User.query.first():
        return False

    citizen = User(name='Arjun Kumar', email='arjun@reliefnet.com')
    citizen.set_password(SEED_PASSWORD)
    admin = User(name='Priya Admin', email='admin@reliefnet.com', role=UserRole.ADMIN)
    admin.set_password(SEED_PASSWORD)
    db_session.add_all([citizen, admin])
    db_session.flush()

    for data in SEED_REPORTS:
        data = dict(data)
        age_days = data.pop('age_days')
        db_session.add(Report(
            user_id=citizen.id,
            user_name=citizen.name,
            user_email=citizen.email,
            status=ReportStatus.VERIFIED,
            created_at=datetime.utcnow() - timedelta(days=age_days),
            **data,
        ))

    db_session.commit()
    return True


def init_database():
    """Initialize the database by creating all tables."""

    config_name = os.getenv('FLASK_ENV', 'development')
    app = create_app(config_name)

    print(f"\n{'='*60}")
    print(f"Database Initialization for {config_name.upper()} Environment")
    print(f"{'='*60}\n")

    with app.app_context():
        try:
            print("Creating database tables...")
            print(f"Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

            db.create_all()

            tables_info = [
                ("users", "Citizens, donors and admins"),
                ("reports", "Geotagged disaster reports"),
                ("donations", "Contributions to relief campaigns"),
            ]

            print("Created tables:")
            for table_name, description in tables_info:
                print(f"  ✓ {table_name:<25} - {description}")

            if seed(db.session):
                print("\nSeeded demo users and reports")
            else:
                print("\nUsers already present, skipping seed data")

            print(f"\n{'='*60}")
            print("✅ Database initialization complete!")
            print(f"{'='*60}\n")
            return True

        except Exception as e:
            db.session.rollback()
            print(f"❌ Error creating database: {e}\n")
            return False


if __name__ == '__main__':
    success = init_database()
    sys.exit(0 if success else 1)
