from django.apps import AppConfig


class NestConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "nest"
    verbose_name = "Scholar's Nest"
