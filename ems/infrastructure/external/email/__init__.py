"""Email notification adapters."""

from ems.infrastructure.external.email.email_service import (
    EmailNotificationService,
    LogOnlyNotificationService,
)

__all__ = ["EmailNotificationService", "LogOnlyNotificationService"]
