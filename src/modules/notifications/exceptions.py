"""Notification exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, DomainError


class NotificationDeliveryFailed(DomainError):
    """The channel could not deliver the message; nothing was written."""


class NotificationChannelUnavailable(ConflictError):
    """The customer has not enabled the chosen channel or lacks its contact."""
