"""Schemas shared across API modules"""

from .base import BaseSchema, MessageResponse, UserSummary, UserResponse

__all__ = ["BaseSchema", "MessageResponse", "UserSummary", "UserResponse"]
