"""URL configuration for the bizops compliance service."""
from django.urls import include, path

urlpatterns = [
    path("api/", include("apps.prerequisites.urls")),
    path("api/", include("apps.customers.urls")),
]
