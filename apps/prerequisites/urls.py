from django.urls import path

from . import views

app_name = "prerequisites"
urlpatterns = [
    path(
        "prerequisites/<str:context>/<str:entity_type>/<int:entity_id>/",
        views.prerequisite_check,
        name="check",
    ),
]
