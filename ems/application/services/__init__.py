"""Application services: session resolver, catalog, user administration."""

from ems.application.services.catalog_service import EventCatalogService
from ems.application.services.session_resolver import SessionResolver
from ems.application.services.user_admin_service import UserAdminService

__all__ = ["EventCatalogService", "SessionResolver", "UserAdminService"]
