import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Persona",
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
                ("nombre", models.CharField(max_length=100)),
                ("telefono", models.CharField(max_length=20)),
                ("email", models.CharField(blank=True, default="", max_length=254)),
                ("phone_notifications", models.BooleanField(default=False)),
                ("email_notifications", models.BooleanField(default=False)),
            ],
            options={
                "db_table": "personas",
                "ordering": ["nombre"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["selling_point", "telefono"],
                        name="personas_sp_telefono_idx",
                    ),
                    models.Index(
                        fields=["selling_point", "nombre"],
                        name="personas_sp_nombre_idx",
                    ),
                ],
            },
        ),
    ]
