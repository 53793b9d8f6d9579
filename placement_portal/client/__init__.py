"""
Admin console client for the placement portal API.
"""

from placement_portal.client.admin_client import AdminClient, AdminClientError
from placement_portal.client.master_settings import MasterSettings

__all__ = ["AdminClient", "AdminClientError", "MasterSettings"]
