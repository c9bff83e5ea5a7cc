from django.contrib import admin

from .models import Exploration


@admin.register(Exploration)
class ExplorationAdmin(admin.ModelAdmin):
    list_display = ('word', 'session_key', 'visits', 'explored_at')
    list_filter = ('explored_at',)
    search_fields = ('word', 'content_preview')
