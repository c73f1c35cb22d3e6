from __future__ import annotations

import json
import logging
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import ValidationError

from journey_planner.exceptions import SessionBusyError
from journey_planner.schemas import PlannerEventResponse, planner_event_adapter
from journey_planner.services.directions import DirectionsConfig
from journey_planner.services.planner import PlannerService
from journey_planner.services.presentation import build_map_view

logger = logging.getLogger(__name__)

_planner_service: PlannerService | None = None


def get_planner_service() -> PlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = PlannerService()
    return _planner_service


@require_GET
def planner_page_view(request: HttpRequest) -> HttpResponse:
    session = get_planner_service().current(_session_id(request))
    return render(
        request,
        "journey_planner/planner.html",
        {"initial_view": build_map_view(session).model_dump(mode="json")},
    )


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    return JsonResponse(
        {
            "status": "ok",
            "directions": {"configured": DirectionsConfig.from_settings().is_configured},
        }
    )


@require_GET
def planner_state_view(request: HttpRequest) -> HttpResponse:
    session = get_planner_service().current(_session_id(request))
    return JsonResponse(build_map_view(session).model_dump(mode="json"), status=200)


@csrf_exempt
@require_POST
def planner_event_view(request: HttpRequest) -> HttpResponse:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        event_request = planner_event_adapter.validate_python(payload)
    except ValidationError as exc:
        return JsonResponse(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid planner event",
                    "details": exc.errors(include_url=False, include_context=False),
                }
            },
            status=400,
        )

    session_id = _session_id(request)
    try:
        result = get_planner_service().dispatch(session_id, event_request.to_event())
    except SessionBusyError as exc:
        return _error_response("session_busy", str(exc), status=503)
    logger.debug(
        "Planner %s handled %s -> %s", session_id, event_request.type, result.session.status.value
    )

    response = PlannerEventResponse(view=build_map_view(result.session), alerts=result.alerts)
    return JsonResponse(response.model_dump(mode="json"), status=200)


def _session_id(request: HttpRequest) -> str:
    # Empty sessions never get a cookie, so mark the session before saving it.
    if not request.session.get("planner_active"):
        request.session["planner_active"] = True
        request.session.save()
    return request.session.session_key


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return _error_response("invalid_json", "Request body must not be empty", status=400)

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
