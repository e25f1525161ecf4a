from decimal import Decimal

import django.core.validators
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Encargo",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("selling_point", models.CharField(db_index=True, max_length=64)),
                ("fecha", models.DateField()),
                ("producto", models.CharField(max_length=255)),
                ("laboratorio", models.CharField(blank=True, default="", max_length=255)),
                ("almacen", models.CharField(blank=True, default="", max_length=255)),
                ("pedido", models.BooleanField(default=False)),
                ("recibido", models.BooleanField(default=False)),
                ("entregado", models.BooleanField(default=False)),
                ("persona", models.CharField(max_length=100)),
                ("telefono", models.CharField(max_length=20)),
                ("avisado", models.BooleanField(default=False)),
                (
                    "pagado",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=8,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00"))
                        ],
                    ),
                ),
                ("observaciones", models.TextField(blank=True, default="")),
            ],
            options={
                "db_table": "encargos",
                "ordering": ["-fecha", "-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["selling_point", "fecha"], name="encargos_sp_fecha_idx"
                    ),
                    models.Index(
                        fields=["selling_point", "telefono"],
                        name="encargos_sp_telefono_idx",
                    ),
                    models.Index(
                        fields=["selling_point", "persona"],
                        name="encargos_sp_persona_idx",
                    ),
                ],
            },
        ),
    ]
