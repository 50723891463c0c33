from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class AbrechnungConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "abrechnung"
    verbose_name = _("Betriebskostenabrechnung")
