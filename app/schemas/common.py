"""
Common Pydantic schemas
"""

from pydantic import BaseModel

class MessageResponse(BaseModel):
    """Plain message body, used for every error response"""
    message: str
