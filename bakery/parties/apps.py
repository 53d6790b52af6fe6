from django.apps import AppConfig


class PartiesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'bakery.parties'
    label = 'parties'

    def ready(self):
        """Import signals when app is ready"""
        import bakery.parties.signals  # noqa: F401
