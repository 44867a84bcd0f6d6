"""
SQLAlchemy models for the Co-Parent Scheduler.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from src.models.base import Base, BaseModel, GUID, IsoDate, get_json_type

# Import all models (must be imported for Alembic autogenerate)
from src.models.family import Family, FamilyMember
from src.models.availability import BlockedPeriod
from src.models.schedule import ScheduleEvent
from src.models.proposals import WeekProposal
from src.models.activity import FamilyActivity
from src.models.webhooks import Webhook

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    "IsoDate",
    "get_json_type",
    # Family
    "Family",
    "FamilyMember",
    # Availability
    "BlockedPeriod",
    # Calendar
    "ScheduleEvent",
    # Proposals
    "WeekProposal",
    # Activity history
    "FamilyActivity",
    # Notifications
    "Webhook",
]
