"""Database models for the ReliefNet application."""

from .user import User, UserRole
from .report import Report, ReportStatus
from .donation import Donation

__all__ = ['User', 'UserRole', 'Report', 'ReportStatus', 'Donation']
