from __future__ import annotations

from rest_framework import serializers


class CatalogEntrySerializer(serializers.Serializer):
    """Output shape shared by productos, laboratorios and almacenes."""

    id = serializers.UUIDField(read_only=True)
    nombre = serializers.CharField(max_length=255)
    created_at = serializers.DateTimeField(read_only=True)
