from django.http import JsonResponse
from django.views.decorators.http import require_GET

from bizops.api import json_view

from .evaluator import check_prerequisites


@require_GET
@json_view
def prerequisite_check(request, context, entity_type, entity_id):
    """Report prerequisites for a context. Storage errors surface as 503."""
    check = check_prerequisites(context.upper(), entity_type.upper(), entity_id)
    return JsonResponse(check.as_dict())
