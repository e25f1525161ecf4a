"""Notification trigger for the ``recibido`` transition.

When an encargo is about to be marked as received, the trigger decides
whether the operator must first choose how (or whether) to tell the
customer.  The write itself belongs to ``EncargoService``; this module
only answers "ask?" and performs the delivery.

Delivery semantics differ per channel:
- WhatsApp is fire-and-forget: the link is returned and the encargo is
  marked notified straight away.
- Email must be accepted by the mail backend first; a failure raises
  ``NotificationDeliveryFailed`` and the caller writes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import structlog

from modules.encargos.constants import NotifyChoice
from modules.notifications.channels import EmailNotifier, WhatsAppLinkBuilder
from modules.notifications.exceptions import (
    NotificationChannelUnavailable,
    NotificationDeliveryFailed,
)

if TYPE_CHECKING:
    from modules.encargos.models import Encargo
    from modules.personas.models import Persona
    from modules.personas.services import PersonaService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationPrompt:
    persona: Persona
    channels: Tuple[str, ...]


class NotificationTrigger:
    def __init__(
        self,
        persona_service: PersonaService,
        email_notifier: Optional[EmailNotifier] = None,
        whatsapp_builder: Optional[WhatsAppLinkBuilder] = None,
    ) -> None:
        self._persona_service = persona_service
        self._email = email_notifier or EmailNotifier()
        self._whatsapp = whatsapp_builder or WhatsAppLinkBuilder()

    def prompt_for(self, encargo: Encargo) -> Optional[NotificationPrompt]:
        """``None`` when there is nobody to notify or no channel enabled."""
        persona = self._persona_service.find_persona_by_contact(
            encargo.telefono, encargo.persona
        )
        if persona is None:
            return None

        channels = []
        if self._whatsapp.can_send(persona):
            channels.append(NotifyChoice.WHATSAPP.value)
        if self._email.can_send(persona):
            channels.append(NotifyChoice.EMAIL.value)
        if not channels:
            return None
        return NotificationPrompt(persona=persona, channels=tuple(channels))

    def deliver(self, channel: str, encargo: Encargo, persona: Persona) -> Optional[str]:
        """Notify through ``channel``; returns the WhatsApp link, if any.

        Raises:
            NotificationChannelUnavailable: channel not enabled for the persona.
            NotificationDeliveryFailed: the email could not be sent.
        """
        log = logger.bind(encargo_id=str(encargo.id), channel=channel)

        if channel == NotifyChoice.WHATSAPP:
            if not self._whatsapp.can_send(persona):
                raise NotificationChannelUnavailable(
                    "El cliente no tiene activadas las notificaciones por WhatsApp."
                )
            url = self._whatsapp.build(encargo, persona)
            log.info("notification.whatsapp_link_built")
            return url

        if channel == NotifyChoice.EMAIL:
            if not self._email.can_send(persona):
                raise NotificationChannelUnavailable(
                    "El cliente no tiene activadas las notificaciones por email."
                )
            try:
                self._email.send(encargo, persona)
            except Exception as exc:
                log.error("notification.email_failed", error=str(exc))
                raise NotificationDeliveryFailed(
                    "No se pudo enviar el email de aviso. Inténtalo de nuevo o "
                    "continúa sin avisar."
                ) from exc
            return None

        raise NotificationChannelUnavailable(f"Canal de aviso desconocido: {channel}")
