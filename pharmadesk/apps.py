from django.apps import AppConfig


class PharmadeskConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'pharmadesk'
    verbose_name = 'PharmaDesk'

    def ready(self):
        from . import auth  # noqa: F401  registers the user_logged_in receiver
