"""Encargo URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.encargos.views import EncargoViewSet

router = DefaultRouter(trailing_slash=True)
router.register("encargos", EncargoViewSet, basename="encargo")

urlpatterns = router.urls
