from django.urls import path

from journey_planner import views

urlpatterns = [
    path("", views.planner_page_view, name="planner"),
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/planner", views.planner_state_view, name="planner-state"),
    path("api/v1/planner/events", views.planner_event_view, name="planner-events"),
]
