from django.urls import include, path

urlpatterns = [
    path("", include("journey_planner.urls")),
]
