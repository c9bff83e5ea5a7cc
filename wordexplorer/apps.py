from django.apps import AppConfig


class WordExplorerConfig(AppConfig):
    """Configuration for the word explorer Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'wordexplorer'
