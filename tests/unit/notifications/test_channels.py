"""Unit tests for the outbound notification channels."""

from __future__ import annotations

import smtplib
from datetime import date
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
from django.core import mail

from modules.core.exceptions import TransientError
from modules.encargos.models import Encargo
from modules.notifications.channels import EmailNotifier, WhatsAppLinkBuilder, build_message
from modules.personas.models import Persona

pytestmark = pytest.mark.unit

TEMPLATE = "Hola {client_name}, tu encargo {order_item} del {order_date} ya está aquí."


@pytest.fixture()
def encargo():
    return Encargo(
        fecha=date(2026, 3, 5),
        producto="Ibuprofeno 600mg",
        laboratorio="Cinfa",
        persona="Ana",
        telefono="600111222",
    )


@pytest.fixture()
def persona():
    return Persona(
        nombre="Ana García",
        telefono="600111222",
        email="ana@example.com",
        phone_notifications=True,
        email_notifications=True,
    )


class TestBuildMessage:
    def test_fills_placeholders(self, encargo, persona):
        message = build_message(encargo, persona, TEMPLATE)
        assert message == (
            "Hola Ana García, tu encargo Ibuprofeno 600mg - Cinfa del 05/03/2026 ya está aquí."
        )

    def test_missing_laboratory(self, encargo, persona):
        encargo.laboratorio = ""
        assert "Ibuprofeno 600mg - N/A" in build_message(encargo, persona, TEMPLATE)

    def test_uses_configured_template(self, settings, encargo, persona):
        settings.NOTIFICATION_MESSAGE_TEMPLATE = "{client_name}: {order_item}"
        assert build_message(encargo, persona) == "Ana García: Ibuprofeno 600mg - Cinfa"


class TestEmailNotifier:
    def test_can_send(self, persona):
        notifier = EmailNotifier()
        assert notifier.can_send(persona)
        persona.email_notifications = False
        assert not notifier.can_send(persona)

    def test_sends_through_mail_backend(self, settings, encargo, persona):
        settings.NOTIFICATION_EMAIL_SUBJECT = "Tu encargo ha llegado"

        assert EmailNotifier().send(encargo, persona) is True

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ["ana@example.com"]
        assert mail.outbox[0].subject == "Tu encargo ha llegado"
        assert "Ana García" in mail.outbox[0].body

    def test_requires_an_address(self, encargo, persona):
        persona.email = ""
        with pytest.raises(ValueError):
            EmailNotifier().send(encargo, persona)

    def test_transient_smtp_failures_are_retried(self, encargo, persona):
        error = smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
        with patch(
            "modules.notifications.channels.send_mail", side_effect=[error, 1]
        ) as send_mail:
            assert EmailNotifier().send(encargo, persona) is True
        assert send_mail.call_count == 2

    def test_gives_up_after_retries(self, settings, encargo, persona):
        settings.RETRY_MAX_RETRIES = 2
        error = smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
        with patch("modules.notifications.channels.send_mail", side_effect=error) as send_mail:
            with pytest.raises(TransientError):
                EmailNotifier().send(encargo, persona)
        assert send_mail.call_count == 3


class TestWhatsAppLinkBuilder:
    def test_link(self, settings, encargo, persona):
        settings.NOTIFICATION_MESSAGE_TEMPLATE = TEMPLATE

        url = WhatsAppLinkBuilder().build(encargo, persona)

        parsed = urlparse(url)
        assert parsed.netloc == "wa.me"
        assert parsed.path == "/34600111222"
        assert parse_qs(parsed.query)["text"] == [build_message(encargo, persona, TEMPLATE)]

    def test_no_phone(self, encargo, persona):
        persona.telefono = ""
        assert WhatsAppLinkBuilder().build(encargo, persona) is None
        assert not WhatsAppLinkBuilder().can_send(persona)
