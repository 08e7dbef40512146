# managers.py

from django.db import models
from threading import local
import logging

logger = logging.getLogger(__name__)

_thread_locals = local()


def get_current_center():
    """Get the center (tenant) active for this thread"""
    return getattr(_thread_locals, 'current_center', None)


def get_current_center_id():
    """Primary key of the active center, or None"""
    center = get_current_center()
    return center.pk if center is not None else None


def set_current_center(center):
    """Set the center (tenant) for this thread"""
    if center is None:
        return False

    _thread_locals.current_center = center
    logger.debug(f"Set current_center to: {center.pk}")
    return True


def clear_current_center():
    """Clear the current center setting"""
    if hasattr(_thread_locals, 'current_center'):
        delattr(_thread_locals, 'current_center')


class CenterContext:
    """Context manager for temporarily switching the active center"""

    def __init__(self, center):
        self.center = center
        self.previous_center = None

    def __enter__(self):
        self.previous_center = get_current_center()
        set_current_center(self.center)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_center is not None:
            set_current_center(self.previous_center)
        else:
            clear_current_center()


class CenterManager(models.Manager):
    """Manager that scopes every query to the current center"""

    def get_queryset(self):
        queryset = super().get_queryset()
        center_id = get_current_center_id()

        if center_id is None:
            return queryset

        return queryset.filter(center_id=center_id)

    # Stamp the active center on rows created through the manager
    def create(self, **kwargs):
        center = get_current_center()
        if center is not None and 'center' not in kwargs and 'center_id' not in kwargs:
            kwargs['center'] = center
        return super().create(**kwargs)

    def unscoped(self):
        """All rows regardless of the active center (admin / reporting use)"""
        return super().get_queryset()


# ==============================================================================
# UTILITY FUNCTIONS
# ==============================================================================

def with_center(center):
    """
    Decorator to execute a function inside a specific center context.

    Example:
        @with_center(center)
        def get_students():
            return list(Student.objects.all())
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            with CenterContext(center):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def execute_for_all_centers(func, *args, **kwargs):
    """
    Execute a function once per active center.

    Example:
        def count_students():
            return Student.objects.count()

        results = execute_for_all_centers(count_students)
        # Returns: {<center id>: 150, <center id>: 200}
    """
    from core.models import Center

    results = {}

    for center in Center.objects.filter(is_active=True).order_by('name'):
        try:
            with CenterContext(center):
                results[center.pk] = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error on center '{center.name}': {e}")
            results[center.pk] = None

    return results
