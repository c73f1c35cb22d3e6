from django.apps import AppConfig


class JourneyPlannerConfig(AppConfig):
    name = "journey_planner"
    verbose_name = "Journey planner"
