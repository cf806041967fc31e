"""JSON endpoints for lifecycle transitions, dormancy and deletion requests.

The acting user comes from request.actor (bizops.middleware.actor).
"""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from bizops.api import BadRequest, json_view, read_json_body

from .dormancy import scan_dormancy
from .erasure import execute_deletion, request_deletion
from .lifecycle import transition_lifecycle


@csrf_exempt
@require_POST
@json_view
def customer_transition(request, customer_id):
    payload = read_json_body(request)
    target = payload.get("targetStatus")
    if not target:
        raise BadRequest("targetStatus is required.")
    result = transition_lifecycle(customer_id, target, request.actor, notes=payload.get("notes") or "")
    if result.success:
        return JsonResponse(result.as_dict())
    if result.check is not None and result.check.degraded:
        # Activation fails closed when prerequisites cannot be loaded
        return JsonResponse(result.as_dict(), status=503)
    return JsonResponse(result.as_dict(), status=422)


@require_GET
@json_view
def dormancy_candidates(request):
    raw = request.GET.get("threshold_days")
    threshold = None
    if raw:
        try:
            threshold = int(raw)
        except ValueError:
            raise BadRequest("threshold_days must be a whole number.")
    candidates = scan_dormancy(threshold_days=threshold, org_id=request.GET.get("org_id") or None)
    return JsonResponse({"candidates": [c.as_dict() for c in candidates]})


@csrf_exempt
@require_POST
@json_view
def deletion_request_create(request, customer_id):
    payload = read_json_body(request)
    deletion = request_deletion(customer_id, request.actor, reason=payload.get("reason") or "")
    return JsonResponse(
        {
            "requestId": deletion.pk,
            "requestCode": deletion.request_code,
            "status": deletion.status,
        },
        status=201,
    )


@csrf_exempt
@require_POST
@json_view
def deletion_request_execute(request, request_id):
    payload = read_json_body(request)
    confirmation = payload.get("confirmationText")
    if not isinstance(confirmation, str):
        raise BadRequest("confirmationText is required.")
    result = execute_deletion(request_id, confirmation, request.actor)
    return JsonResponse(result.as_dict())
