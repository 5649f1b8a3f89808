"""
Pydantic schemas package
"""

from .common import *
from .party import *

__all__ = [
    "MessageResponse",
    "JoinRequest",
    "PartyStatusResponse",
    "PartyResponse",
    "WaitlistSnapshot",
]
