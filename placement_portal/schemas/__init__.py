"""
Schemas module - Request/Response schemas for API endpoints.
"""

from placement_portal.schemas.schemas import (
    UserRole, ApplicationStatus, AllocationStatus, MessageResponse
)

__all__ = ["UserRole", "ApplicationStatus", "AllocationStatus", "MessageResponse"]
