from django.apps import AppConfig


class EncargosConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.encargos"
    label = "encargos"
