"""Order workflow state machine.

An encargo moves through ``pedido → recibido → entregado``.  The valid
resting states are ``(F,F,F)``, ``(T,F,F)``, ``(T,T,F)`` and ``(T,T,T)``.

A single-flag change is classified against the *current* flags into one
transition kind.  Kinds that would break the stage ordering are not
rejected: they carry the dependent flags the operator has to decide
about, and ``resolve`` turns that decision into the exact field write.

Turning a stage on lets the operator apply only the requested flag;
turning one off always clears every later stage.  The two policies are
deliberately kept different.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from modules.encargos.constants import CascadeDecision, Stage


class InvalidDecision(ValueError):
    """The decision is not allowed for this transition kind."""


@dataclass(frozen=True)
class StageFlags:
    pedido: bool = False
    recibido: bool = False
    entregado: bool = False

    @classmethod
    def of(cls, encargo) -> "StageFlags":
        return cls(
            pedido=bool(encargo.pedido),
            recibido=bool(encargo.recibido),
            entregado=bool(encargo.entregado),
        )

    @property
    def is_consistent(self) -> bool:
        """``entregado ⇒ recibido ⇒ pedido``."""
        if self.entregado and not self.recibido:
            return False
        if self.recibido and not self.pedido:
            return False
        return True

    def apply(self, changes: Dict[str, bool]) -> "StageFlags":
        return StageFlags(
            pedido=changes.get(Stage.PEDIDO, self.pedido),
            recibido=changes.get(Stage.RECIBIDO, self.recibido),
            entregado=changes.get(Stage.ENTREGADO, self.entregado),
        )


# ---------------------------------------------------------------------------
# Transition kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderedOn:
    stage = Stage.PEDIDO
    value = True


@dataclass(frozen=True)
class OrderedOff:
    """Un-ordering; ``received``/``delivered`` are the later flags still set."""

    received: bool
    delivered: bool
    stage = Stage.PEDIDO
    value = False


@dataclass(frozen=True)
class ReceivedOn:
    """Receiving; ``ordered`` is ``False`` when the order was never placed."""

    ordered: bool
    stage = Stage.RECIBIDO
    value = True


@dataclass(frozen=True)
class ReceivedOff:
    delivered: bool
    stage = Stage.RECIBIDO
    value = False


@dataclass(frozen=True)
class DeliveredOn:
    received: bool
    ordered: bool
    stage = Stage.ENTREGADO
    value = True


@dataclass(frozen=True)
class DeliveredOff:
    stage = Stage.ENTREGADO
    value = False


Transition = Union[OrderedOn, OrderedOff, ReceivedOn, ReceivedOff, DeliveredOn, DeliveredOff]


def classify_transition(flags: StageFlags, stage: str, value: bool) -> Transition:
    """Classify setting ``stage`` to ``value`` on an encargo with ``flags``."""
    if stage == Stage.PEDIDO:
        if value:
            return OrderedOn()
        return OrderedOff(received=flags.recibido, delivered=flags.entregado)
    if stage == Stage.RECIBIDO:
        if value:
            return ReceivedOn(ordered=flags.pedido)
        return ReceivedOff(delivered=flags.entregado)
    if stage == Stage.ENTREGADO:
        if value:
            return DeliveredOn(received=flags.recibido, ordered=flags.pedido)
        return DeliveredOff()
    raise ValueError(f"Unknown stage: {stage!r}")


def is_turn_on(transition: Transition) -> bool:
    return transition.value is True


def requires_confirmation(transition: Transition) -> bool:
    if isinstance(transition, OrderedOff):
        return transition.received or transition.delivered
    if isinstance(transition, ReceivedOn):
        return not transition.ordered
    if isinstance(transition, ReceivedOff):
        return transition.delivered
    if isinstance(transition, DeliveredOn):
        return not transition.received
    return False


def cascade_fields(transition: Transition) -> Dict[str, bool]:
    """Dependent flags written alongside the requested one on ``cascade``."""
    if isinstance(transition, OrderedOff):
        fields = {}
        if transition.received:
            fields[Stage.RECIBIDO] = False
        if transition.delivered:
            fields[Stage.ENTREGADO] = False
        return fields
    if isinstance(transition, ReceivedOn):
        return {} if transition.ordered else {Stage.PEDIDO: True}
    if isinstance(transition, ReceivedOff):
        return {Stage.ENTREGADO: False} if transition.delivered else {}
    if isinstance(transition, DeliveredOn):
        fields = {}
        if not transition.received:
            fields[Stage.RECIBIDO] = True
        if not transition.ordered:
            fields[Stage.PEDIDO] = True
        return fields
    return {}


def resolve(
    transition: Transition, decision: Optional[str] = None
) -> Optional[Dict[str, bool]]:
    """Return the field write for ``transition``, or ``None`` to write nothing.

    Valid transitions ignore ``decision``.  Invalid ones need one:

    * ``cascade`` writes the requested flag plus ``cascade_fields``;
    * ``requested_only`` writes just the requested flag (turn-on only);
    * ``cancel`` writes nothing.

    Raises:
        InvalidDecision: no decision given for an invalid transition, or
            ``requested_only`` on a turn-off.
    """
    requested = {transition.stage: transition.value}
    if not requires_confirmation(transition):
        return requested

    if decision == CascadeDecision.CANCEL:
        return None
    if decision == CascadeDecision.CASCADE:
        return {**cascade_fields(transition), **requested}
    if decision == CascadeDecision.REQUESTED_ONLY:
        if not is_turn_on(transition):
            raise InvalidDecision(
                "Al desmarcar una etapa se deben desmarcar también las posteriores."
            )
        return requested
    raise InvalidDecision("Esta transición requiere confirmación.")


def describe(transition: Transition) -> Tuple[str, str]:
    """``(kind, message)`` used in confirmation payloads."""
    kind = type(transition).__name__
    if isinstance(transition, OrderedOff):
        return kind, (
            "El encargo ya está recibido o entregado. Si lo desmarcas como "
            "pedido se desmarcarán también las etapas posteriores."
        )
    if isinstance(transition, ReceivedOn):
        return kind, "El encargo no está marcado como pedido. ¿Marcarlo también?"
    if isinstance(transition, ReceivedOff):
        return kind, (
            "El encargo ya está entregado. Si lo desmarcas como recibido se "
            "desmarcará también como entregado."
        )
    if isinstance(transition, DeliveredOn):
        return kind, (
            "El encargo no está marcado como recibido. ¿Marcar también las "
            "etapas anteriores?"
        )
    return kind, ""
