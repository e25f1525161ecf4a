import uuid6
from django.db import migrations, models


def _catalog_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid6.uuid7, editable=False, primary_key=True, serialize=False
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("selling_point", models.CharField(db_index=True, max_length=64)),
        ("nombre", models.CharField(max_length=255)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Producto",
            fields=_catalog_fields(),
            options={
                "db_table": "productos",
                "ordering": ["nombre"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["selling_point", "nombre"],
                        name="productos_sp_nombre_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Laboratorio",
            fields=_catalog_fields(),
            options={
                "db_table": "laboratorios",
                "ordering": ["nombre"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["selling_point", "nombre"],
                        name="laboratorios_sp_nombre_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Almacen",
            fields=_catalog_fields(),
            options={
                "db_table": "almacenes",
                "ordering": ["nombre"],
                "verbose_name_plural": "almacenes",
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["selling_point", "nombre"],
                        name="almacenes_sp_nombre_idx",
                    )
                ],
            },
        ),
    ]
