from django.urls import path

from . import views

app_name = "customers"
urlpatterns = [
    path("customers/dormancy/", views.dormancy_candidates, name="dormancy"),
    path("customers/<int:customer_id>/transition/", views.customer_transition, name="transition"),
    path(
        "customers/<int:customer_id>/deletion-requests/",
        views.deletion_request_create,
        name="deletion_request_create",
    ),
    path(
        "deletion-requests/<int:request_id>/execute/",
        views.deletion_request_execute,
        name="deletion_request_execute",
    ),
]
