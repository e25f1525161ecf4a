"""Encargo DRF serializers for API output.

Input is validated by the Pydantic DTOs in ``dtos.py``; these
serializers only shape responses.
"""

from __future__ import annotations

from dataclasses import asdict

from rest_framework import serializers

from modules.core.phone import format_phone_number
from modules.encargos.constants import CascadeDecision
from modules.encargos.models import Encargo
from modules.encargos.workflow import Transition, describe, is_turn_on


class EncargoSerializer(serializers.ModelSerializer):
    telefono_formatted = serializers.SerializerMethodField()

    class Meta:
        model = Encargo
        fields = [
            "id",
            "fecha",
            "producto",
            "laboratorio",
            "almacen",
            "pedido",
            "recibido",
            "entregado",
            "persona",
            "telefono",
            "telefono_formatted",
            "avisado",
            "pagado",
            "observaciones",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_telefono_formatted(self, obj: Encargo) -> str:
        return format_phone_number(obj.telefono)


class EncargoHistorySerializer(serializers.ModelSerializer):
    """Compact row for a customer's order history."""

    class Meta:
        model = Encargo
        fields = ["id", "fecha", "producto", "laboratorio", "entregado", "pagado"]
        read_only_fields = fields


class SummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pedidos = serializers.IntegerField()
    recibidos = serializers.IntegerField()
    entregados = serializers.IntegerField()
    pendientes = serializers.IntegerField()
    por_avisar = serializers.IntegerField()
    este_mes = serializers.IntegerField()
    total_pagado = serializers.DecimalField(max_digits=12, decimal_places=2)


def serialize_transition(transition: Transition) -> dict:
    """Confirmation payload: the kind, its fields and the allowed decisions."""
    kind, message = describe(transition)
    options = [CascadeDecision.CASCADE.value]
    if is_turn_on(transition):
        options.append(CascadeDecision.REQUESTED_ONLY.value)
    options.append(CascadeDecision.CANCEL.value)
    return {
        "kind": kind,
        "stage": str(transition.stage),
        "value": transition.value,
        **asdict(transition),
        "message": message,
        "options": options,
    }
