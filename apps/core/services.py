# core/services.py

"""
Subscription plan enforcement.

Each center is on a subscription tier that caps active students and
additional staff, and switches optional modules on or off.
"""

from django.core.exceptions import ValidationError
import logging

logger = logging.getLogger(__name__)


UNLIMITED = -1

DEFAULT_TIER = 'starter'

TIER_ORDER = ['micro', 'starter', 'standard', 'premium']

CORE_MODULES = ['attendance', 'grades', 'classes', 'timetable']
STANDARD_MODULES = ['report_cards', 'student_portal', 'teacher_portal', 'library', 'sms']
PREMIUM_MODULES = ['hostel', 'transport']

ALL_MODULES = CORE_MODULES + STANDARD_MODULES + PREMIUM_MODULES


def _modules(*groups):
    included = set()
    for group in groups:
        included.update(group)
    return {module: module in included for module in ALL_MODULES}


# -1 means unlimited. micro is a solo operator: the center admin only.
PLAN_LIMITS = {
    'micro': {
        'max_students': 15,
        'max_staff': 0,
        'modules': _modules(CORE_MODULES),
    },
    'starter': {
        'max_students': 50,
        'max_staff': 2,
        'modules': _modules(CORE_MODULES),
    },
    'standard': {
        'max_students': 150,
        'max_staff': 5,
        'modules': _modules(CORE_MODULES, STANDARD_MODULES),
    },
    'premium': {
        'max_students': UNLIMITED,
        'max_staff': UNLIMITED,
        'modules': _modules(CORE_MODULES, STANDARD_MODULES, PREMIUM_MODULES),
    },
}


class SubscriptionLimitService:
    """
    Student / staff limits and module access for a center's plan.
    """

    @staticmethod
    def get_tier(center):
        """Center tier, falling back to starter for unknown values."""
        tier = center.subscription_tier
        if tier not in PLAN_LIMITS:
            logger.warning(f"Unknown subscription tier '{tier}' on center {center.pk}, using {DEFAULT_TIER}")
            return DEFAULT_TIER
        return tier

    @staticmethod
    def _usage(current, limit, tier):
        if limit == UNLIMITED:
            return {
                'can_add': True,
                'current': current,
                'limit': UNLIMITED,
                'tier': tier,
                'remaining': UNLIMITED,
                'percent_used': 0,
                'is_near_limit': False,
                'is_at_limit': False,
            }

        percent_used = (current / limit * 100) if limit > 0 else 100

        return {
            'can_add': current < limit,
            'current': current,
            'limit': limit,
            'tier': tier,
            'remaining': max(0, limit - current),
            'percent_used': round(percent_used),
            'is_near_limit': percent_used >= 80,
            'is_at_limit': current >= limit,
        }

    @staticmethod
    def check_student_limit(center):
        """
        Check whether a center can enroll another active student.

        Returns:
            dict: can_add, current, limit, tier, remaining, percent_used,
                  is_near_limit (>= 80 %), is_at_limit
        """
        from students.models import Student

        tier = SubscriptionLimitService.get_tier(center)
        limit = PLAN_LIMITS[tier]['max_students']
        current = Student.objects.unscoped().filter(center=center, status='active').count()

        return SubscriptionLimitService._usage(current, limit, tier)

    @staticmethod
    def check_staff_limit(center):
        """
        Check whether a center can add another staff member.
        Only active center_staff count; the center admin is not included.
        """
        from core.models import StaffMember

        tier = SubscriptionLimitService.get_tier(center)
        limit = PLAN_LIMITS[tier]['max_staff']
        current = StaffMember.objects.unscoped().filter(
            center=center,
            role='center_staff',
            is_active=True
        ).count()

        usage = SubscriptionLimitService._usage(current, limit, tier)
        usage.pop('is_near_limit')
        return usage

    @staticmethod
    def get_required_tier(module):
        """Lowest tier that includes the module, or None for unknown modules."""
        for tier in TIER_ORDER:
            if PLAN_LIMITS[tier]['modules'].get(module):
                return tier
        return None

    @staticmethod
    def check_module_access(center, module):
        """
        Check whether a module is available to a center.

        Access requires both the plan to include the module and the center's
        own switch for it to be on.
        """
        tier = SubscriptionLimitService.get_tier(center)
        required_tier = SubscriptionLimitService.get_required_tier(module)
        in_plan = PLAN_LIMITS[tier]['modules'].get(module, False)
        is_enabled = center.is_module_enabled(module)

        result = {
            'has_access': in_plan and is_enabled,
            'tier': tier,
            'required_tier': required_tier,
            'is_enabled': is_enabled,
        }

        if required_tier is None:
            result['reason'] = f"Unknown module: {module}"
        elif not in_plan:
            result['reason'] = f"The {module.replace('_', ' ')} module requires the {required_tier} plan or higher"
        elif not is_enabled:
            result['reason'] = f"The {module.replace('_', ' ')} module is disabled for this center"

        return result

    @staticmethod
    def enforce_student_limit(center):
        """
        Raises:
            ValidationError: when the center is at its student limit
        """
        usage = SubscriptionLimitService.check_student_limit(center)
        if not usage['can_add']:
            raise ValidationError(
                f"Student limit reached for the {usage['tier']} plan "
                f"({usage['current']}/{usage['limit']}). Upgrade to add more students."
            )
        return usage

    @staticmethod
    def enforce_staff_limit(center):
        """
        Raises:
            ValidationError: when the center is at its staff limit
        """
        usage = SubscriptionLimitService.check_staff_limit(center)
        if not usage['can_add']:
            raise ValidationError(
                f"Staff limit reached for the {usage['tier']} plan "
                f"({usage['current']}/{usage['limit']}). Upgrade to add more staff."
            )
        return usage
