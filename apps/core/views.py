# core/views.py

from django.contrib.auth.decorators import login_required
from django.views.decorators.http import require_http_methods
from django.http import JsonResponse
import logging

from .services import SubscriptionLimitService, PLAN_LIMITS

logger = logging.getLogger(__name__)


@login_required
@require_http_methods(["GET"])
def subscription_status(request):
    """Plan usage for the current center, plus access to any ?module= asked about."""
    center = getattr(request, 'center', None)
    if center is None:
        return JsonResponse({"success": False, "message": "No active center for this account"}, status=403)

    data = {
        "success": True,
        "tier": SubscriptionLimitService.get_tier(center),
        "students": SubscriptionLimitService.check_student_limit(center),
        "staff": SubscriptionLimitService.check_staff_limit(center),
    }

    modules = request.GET.getlist('module')
    if modules:
        data["modules"] = {
            module: SubscriptionLimitService.check_module_access(center, module)
            for module in modules
        }
    else:
        data["modules"] = {
            module: included
            for module, included in PLAN_LIMITS[data["tier"]]['modules'].items()
        }

    return JsonResponse(data)
