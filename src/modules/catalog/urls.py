"""Catalog URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.catalog.views import AlmacenViewSet, LaboratorioViewSet, ProductoViewSet

router = DefaultRouter(trailing_slash=True)
router.register("productos", ProductoViewSet, basename="producto")
router.register("laboratorios", LaboratorioViewSet, basename="laboratorio")
router.register("almacenes", AlmacenViewSet, basename="almacen")

urlpatterns = router.urls
