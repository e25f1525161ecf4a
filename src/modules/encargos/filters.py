import django_filters
from django.utils import timezone

from modules.encargos.models import Encargo


class EncargoFilter(django_filters.FilterSet):
    persona = django_filters.CharFilter(field_name="persona", lookup_expr="icontains")
    telefono = django_filters.CharFilter(field_name="telefono", lookup_expr="icontains")
    producto = django_filters.CharFilter(field_name="producto", lookup_expr="icontains")
    laboratorio = django_filters.CharFilter(
        field_name="laboratorio", lookup_expr="icontains"
    )
    almacen = django_filters.CharFilter(field_name="almacen", lookup_expr="icontains")
    start_date = django_filters.DateFilter(field_name="fecha", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="fecha", lookup_expr="lte")
    pedido = django_filters.BooleanFilter(field_name="pedido")
    recibido = django_filters.BooleanFilter(field_name="recibido")
    entregado = django_filters.BooleanFilter(field_name="entregado")
    avisado = django_filters.BooleanFilter(field_name="avisado")
    pending = django_filters.BooleanFilter(method="filter_pending")
    this_month = django_filters.BooleanFilter(method="filter_this_month")

    class Meta:
        model = Encargo
        fields = [
            "persona",
            "telefono",
            "producto",
            "laboratorio",
            "almacen",
            "start_date",
            "end_date",
            "pedido",
            "recibido",
            "entregado",
            "avisado",
            "pending",
            "this_month",
        ]

    def filter_pending(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(entregado=not value)

    def filter_this_month(self, queryset, name, value):
        if not value:
            return queryset
        today = timezone.localdate()
        return queryset.filter(fecha__year=today.year, fecha__month=today.month)
