"""Outbound notification channels.

- ``EmailNotifier`` sends through Django's configured mail backend and
  retries transient SMTP/connection failures.
- ``WhatsAppLinkBuilder`` only builds a ``wa.me`` link with the message
  pre-filled; the operator opens it, nothing is sent from the server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from urllib.parse import quote

import structlog
from django.conf import settings
from django.core.mail import send_mail

from modules.core.phone import to_international_digits
from modules.core.retry import retry_on_transient

if TYPE_CHECKING:
    from modules.encargos.models import Encargo
    from modules.personas.models import Persona

logger = structlog.get_logger(__name__)

WHATSAPP_BASE_URL = "https://wa.me/"


def build_message(encargo: Encargo, persona: Persona, template: Optional[str] = None) -> str:
    """Fill ``{client_name}``, ``{order_item}`` and ``{order_date}``."""
    template = template or settings.NOTIFICATION_MESSAGE_TEMPLATE
    order_item = f"{encargo.producto} - {encargo.laboratorio or 'N/A'}"
    return (
        template.replace("{client_name}", persona.nombre)
        .replace("{order_item}", order_item)
        .replace("{order_date}", encargo.fecha.strftime("%d/%m/%Y"))
    )


class EmailNotifier:
    def can_send(self, persona: Persona) -> bool:
        return bool(persona.email and persona.email_notifications)

    def send(self, encargo: Encargo, persona: Persona) -> bool:
        """Send the arrival email; raises once retries are exhausted."""
        if not persona.email:
            raise ValueError("Client email is required")
        sent = self._send(persona.email, build_message(encargo, persona))
        logger.info("notification.email_sent", encargo_id=str(encargo.id))
        return sent

    @retry_on_transient
    def _send(self, to: str, message: str) -> bool:
        return (
            send_mail(
                settings.NOTIFICATION_EMAIL_SUBJECT,
                message,
                settings.DEFAULT_FROM_EMAIL,
                [to],
                fail_silently=False,
            )
            > 0
        )


class WhatsAppLinkBuilder:
    def can_send(self, persona: Persona) -> bool:
        return bool(persona.telefono and persona.phone_notifications)

    def build(self, encargo: Encargo, persona: Persona) -> Optional[str]:
        if not persona.telefono:
            return None
        phone = to_international_digits(persona.telefono)
        text = quote(build_message(encargo, persona), safe="")
        return f"{WHATSAPP_BASE_URL}{phone}?text={text}"
