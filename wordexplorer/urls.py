"""URL configuration for the word explorer app.

This module defines the URL patterns for the app's views. It also
specifies the ``app_name`` to allow namespacing from the project URL
configuration.
"""

from django.urls import path

from . import views

app_name = 'wordexplorer'

urlpatterns = [
    path('', views.home, name='home'),
    path('api/explanation/', views.explanation, name='explanation'),
    path('api/links/', views.links, name='links'),
    path('history/', views.history_page, name='history'),
    path('history/clear/', views.history_clear, name='history_clear'),
    path('api/history/', views.history_api, name='history_api'),
    path('api/history/stats/', views.history_stats, name='history_stats'),
]
