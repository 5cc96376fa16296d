"""Account notification senders (implement INotificationService).

EmailNotificationService sends through the Supabase edge function first
and, when that fails and an API URL is configured, through a plain HTTP
email endpoint. LogOnlyNotificationService logs instead of sending.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from ems.domain.exceptions import NotificationException, PersistenceException
from ems.infrastructure.external.email.templates import EmailMessage, login_email, welcome_email
from ems.infrastructure.supabase._rest_client import SupabaseRESTClient
from ems.schemas.profile import ProfileContact
from ems.shared.telemetry.logging import get_logger
from ems.shared.telemetry.tracing import traced

logger = get_logger(__name__)


def _contact(email: str, name: str) -> ProfileContact:
    try:
        return ProfileContact(email=email, name=name or email)
    except ValidationError as e:
        raise NotificationException(email, "invalid recipient") from e


class EmailNotificationService:
    """Sends welcome and login emails via edge function with HTTP API fallback."""

    def __init__(
        self,
        rest: SupabaseRESTClient,
        *,
        function_name: str = "send-email",
        api_url: str | None = None,
        app_name: str = "EMS-GUB",
    ) -> None:
        self._rest = rest
        self._function_name = function_name
        self._api_url = api_url
        self._app_name = app_name

    async def send_welcome_notification(self, email: str, name: str) -> None:
        contact = _contact(email, name)
        await self._send(contact, welcome_email(contact.name, self._app_name))

    async def send_login_notification(self, email: str, name: str) -> None:
        contact = _contact(email, name)
        await self._send(contact, login_email(contact.name, self._app_name))

    @traced("notifications.send_email")
    async def _send(self, contact: ProfileContact, message: EmailMessage) -> None:
        try:
            await self._rest.invoke_function(
                self._function_name,
                {
                    "to": contact.email,
                    "subject": message.subject,
                    "body": message.html,
                    "isHtml": True,
                },
            )
            logger.info("Email sent via edge function (subject=%r)", message.subject)
            return
        except PersistenceException as e:
            if not self._api_url:
                raise NotificationException(contact.email, e.message) from e
            logger.warning("Edge function email failed, trying API fallback: %s", e.message)

        try:
            resp = await self._rest.http.post(
                self._api_url,
                json={"to": contact.email, "subject": message.subject, "html": message.html},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationException(contact.email, str(e) or e.__class__.__name__) from e
        logger.info("Email sent via API fallback (subject=%r)", message.subject)


class LogOnlyNotificationService:
    """INotificationService implementation that logs instead of sending email.

    Use when no email backend is deployed.
    """

    def __init__(self, app_name: str = "EMS-GUB") -> None:
        self._app_name = app_name

    async def send_welcome_notification(self, email: str, name: str) -> None:
        self._log(email, welcome_email(name or email, self._app_name))

    async def send_login_notification(self, email: str, name: str) -> None:
        self._log(email, login_email(name or email, self._app_name))

    def _log(self, email: str, message: EmailMessage) -> None:
        logger.info("Notify: would send %r to 1 recipient", message.subject)
        logger.debug("Notify recipient: %s; body (first 500 chars): %s", email, message.html[:500])
