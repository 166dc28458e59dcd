"""Organization entity module."""

from .entity import Organization
from .repository import OrganizationRepository
from .table import OrganizationTable

__all__ = ["Organization", "OrganizationTable", "OrganizationRepository"]
