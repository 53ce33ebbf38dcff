from django.apps import AppConfig


class PtoConfig(AppConfig):
    name = 'pto'
    verbose_name = 'PTO Tracker'
