"""Shared plumbing for the JSON views.

``json_view`` turns service exceptions into JSON error responses so every
view maps the error taxonomy to the same status codes.
"""
import functools
import json
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.http import JsonResponse

from .exceptions import ComplianceError

logger = logging.getLogger(__name__)


class BadRequest(ComplianceError):
    code = "bad_request"


def json_view(view_func):
    @functools.wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ComplianceError as exc:
            return JsonResponse(exc.as_dict(), status=exc.http_status)
        except ObjectDoesNotExist as exc:
            return JsonResponse({"error": "not_found", "message": str(exc)}, status=404)
        except ValidationError as exc:
            errors = exc.message_dict if hasattr(exc, "error_dict") else {"__all__": exc.messages}
            return JsonResponse({"error": "validation_error", "details": errors}, status=400)
        except ValueError as exc:
            return JsonResponse({"error": "bad_request", "message": str(exc)}, status=400)
    return wrapper


def read_json_body(request):
    """Parse a JSON object request body. An empty body is an empty object."""
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest("Request body must be valid JSON.")
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object.")
    return payload
