"""Root URL configuration for wordexplorer_tool."""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('wordexplorer.urls')),
]
