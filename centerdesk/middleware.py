# centerdesk/middleware.py

"""
Multi-tenant center middleware for the tutorial center administration system.

This middleware:
1. Resolves the authenticated user's center (tenant)
2. Scopes all center-owned querysets for the duration of the request
3. Exposes the center timezone on the request
4. Lets superusers inspect another center with ?center=<id>

Every tenant-owned table carries a center foreign key; the active center
lives in a thread-local (see centerdesk.managers) and is restored once the
response has been produced.
"""

import logging
from django.core.cache import cache
from django.conf import settings
from django.core.exceptions import ValidationError

from .managers import get_current_center, set_current_center, clear_current_center

logger = logging.getLogger(__name__)


class CenterMiddleware:
    """
    Center selection logic:
    1. System paths (/admin/, /static/, /media/) → no center scope
    2. Superusers with ?center=<id> → that center
    3. Authenticated users → center of their active staff profile
    4. Fallback → no center scope
    """

    SYSTEM_PATHS = ['/admin/', '/static/', '/media/', '/__debug__/']

    # Cache timeout (1 hour)
    CACHE_TIMEOUT = 3600

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        original_center = get_current_center()

        try:
            center = self.determine_center(request)

            if center is not None:
                set_current_center(center)
                request.center = center
                request.center_timezone = center.timezone or settings.TIME_ZONE
                logger.debug(f"Switched center context to: {center.pk}")
            else:
                clear_current_center()
                request.center = None
                request.center_timezone = settings.TIME_ZONE

        except Exception:
            logger.exception("CenterMiddleware failure - continuing without center scope")
            clear_current_center()
            request.center = None
            request.center_timezone = settings.TIME_ZONE

        try:
            response = self.get_response(request)
        finally:
            if original_center is not None:
                set_current_center(original_center)
            else:
                clear_current_center()

        return response

    # ==========================================================================
    # CENTER DETERMINATION LOGIC
    # ==========================================================================

    def determine_center(self, request):
        if self.is_system_path(request.path):
            return None

        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return None

        if user.is_superuser:
            override = self.get_center_override(request)
            if override is not None:
                return override

        return self.get_user_center(user)

    def is_system_path(self, path):
        """Check if path is a system path that is never center scoped."""
        return any(path.startswith(p) for p in self.SYSTEM_PATHS)

    def get_center_override(self, request):
        """Superuser override via ?center=<id>."""
        from core.models import Center

        center_id = request.GET.get('center')
        if not center_id:
            return None

        try:
            return Center.objects.get(pk=center_id, is_active=True)
        except (Center.DoesNotExist, ValueError, ValidationError):
            logger.warning(f"Superuser requested unknown center: {center_id}")
            return None

    # ==========================================================================
    # USER → CENTER RESOLUTION
    # ==========================================================================

    def get_user_center(self, user):
        """
        Get the center a user works for.

        Returns:
            Center or None when the user has no active staff profile or the
            center is deactivated.
        """
        from core.models import Center, StaffMember

        cache_key = f"user_center_{user.pk}"
        cached_id = cache.get(cache_key)
        if cached_id:
            center = Center.objects.filter(pk=cached_id, is_active=True).first()
            if center is not None:
                return center

        profile = (
            StaffMember.objects.unscoped()
            .select_related('center')
            .filter(user=user, is_active=True)
            .first()
        )

        if profile is None:
            logger.warning(f"User {user.get_username()} has no staff profile")
            return None

        if not profile.center.is_active:
            logger.warning(f"Inactive center for user {user.get_username()}: {profile.center.name}")
            return None

        cache.set(cache_key, profile.center.pk, self.CACHE_TIMEOUT)
        logger.debug(f"Resolved center for user {user.get_username()}: {profile.center.pk}")
        return profile.center

    # ==========================================================================
    # CACHE MANAGEMENT
    # ==========================================================================

    @staticmethod
    def clear_user_cache(user_id):
        """
        Clear the cached center for one user.

        Call this when the user's staff profile changes: deactivation,
        removal or a move to another center.
        """
        cache.delete(f"user_center_{user_id}")
        logger.debug(f"Cleared center cache for user {user_id}")
