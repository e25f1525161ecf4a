import django_filters
from django.db.models import Q

from modules.personas.models import Persona


class PersonaFilter(django_filters.FilterSet):
    nombre = django_filters.CharFilter(field_name="nombre", lookup_expr="icontains")
    telefono = django_filters.CharFilter(field_name="telefono", lookup_expr="icontains")
    q = django_filters.CharFilter(method="filter_q")

    class Meta:
        model = Persona
        fields = ["nombre", "telefono", "q"]

    def filter_q(self, queryset, name, value):
        return queryset.filter(Q(nombre__icontains=value) | Q(telefono__icontains=value))
