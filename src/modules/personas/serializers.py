"""Persona DRF serializers for API output."""

from __future__ import annotations

from rest_framework import serializers

from modules.core.phone import format_phone_number
from modules.personas.models import Persona


class PersonaSerializer(serializers.ModelSerializer):
    telefono_formatted = serializers.SerializerMethodField()

    class Meta:
        model = Persona
        fields = [
            "id",
            "nombre",
            "telefono",
            "telefono_formatted",
            "email",
            "phone_notifications",
            "email_notifications",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_telefono_formatted(self, obj: Persona) -> str:
        return format_phone_number(obj.telefono)


class ConsistencyReportSerializer(serializers.Serializer):
    orphaned_encargos = serializers.IntegerField()
    inconsistent_personas = serializers.IntegerField()
    duplicate_phones = serializers.IntegerField()
    is_consistent = serializers.BooleanField()


class RepairReportSerializer(serializers.Serializer):
    fixed = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.CharField())


class NotificationPreferencesSerializer(serializers.Serializer):
    phone_notifications = serializers.BooleanField(required=False)
    email_notifications = serializers.BooleanField(required=False)
