"""Persona URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.personas.views import PersonaViewSet

router = DefaultRouter(trailing_slash=True)
router.register("personas", PersonaViewSet, basename="persona")

urlpatterns = router.urls
