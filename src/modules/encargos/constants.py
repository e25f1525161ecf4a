"""Encargo domain constants.

The three workflow stages, in fulfilment order, and the operator
choices that resolve a confirmation or a notification prompt.
"""

from django.db import models


class Stage(models.TextChoices):
    PEDIDO = "pedido", "Pedido"
    RECIBIDO = "recibido", "Recibido"
    ENTREGADO = "entregado", "Entregado"


STAGE_ORDER: tuple[str, ...] = (Stage.PEDIDO, Stage.RECIBIDO, Stage.ENTREGADO)


class CascadeDecision(models.TextChoices):
    CASCADE = "cascade", "Aplicar también las etapas dependientes"
    REQUESTED_ONLY = "requested_only", "Aplicar solo el cambio solicitado"
    CANCEL = "cancel", "Cancelar"


class NotifyChoice(models.TextChoices):
    EMAIL = "email", "Email"
    WHATSAPP = "whatsapp", "WhatsApp"
    NONE = "none", "No avisar"


SEARCH_FIELDS: tuple[str, ...] = (
    "persona",
    "telefono",
    "producto",
    "laboratorio",
    "observaciones",
)
