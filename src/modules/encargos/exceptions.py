"""Encargo domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import ConflictError, DomainValidationError, EntityNotFound


class EncargoNotFound(EntityNotFound):
    """The requested encargo does not exist in this selling point."""


class PotentialDuplicate(ConflictError):
    """Same customer, product and day as an existing encargo."""


class InconsistentStages(DomainValidationError):
    """Initial flags break ``entregado ⇒ recibido ⇒ pedido``."""


class StageFieldNotEditable(DomainValidationError):
    """Stage flags can only change through the workflow endpoint."""


class InvalidStageDecision(DomainValidationError):
    """The operator's decision is not allowed for this transition."""


class StageChangedConcurrently(ConflictError):
    """The stage flags moved between planning a change and writing it."""
