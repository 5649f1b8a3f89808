"""
Database models package
"""

from .party import ACTIVE_STATUSES, Party, PartyStatus

__all__ = ["Party", "PartyStatus", "ACTIVE_STATUSES"]
