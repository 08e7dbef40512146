# utils/audit.py

import json
import logging

from utils.context import get_request_context
from utils.models import AuditLog

logger = logging.getLogger(__name__)


def _json_safe(values):
    """Round-trip through json so Decimals, dates and UUIDs are stored as strings."""
    if not values:
        return {}
    return json.loads(json.dumps(values, default=str))


def log_action(action, entity, center=None, user=None, old_values=None, new_values=None):
    """
    Write an AuditLog entry for an action on a model instance.

    Args:
        action (str): One of AuditLog.ACTION_CHOICES (e.g. 'CREATE', 'REVERSE').
        entity: Model instance acted upon.
        center: Center owning the entity (defaults to entity.center).
        user: Acting user; falls back to the user of the current request.
        old_values (dict, optional): Values before the change.
        new_values (dict, optional): Values after the change.

    Returns:
        AuditLog instance
    """
    context = get_request_context() or {}

    if user is None:
        user = context.get('user')

    if center is None:
        center = getattr(entity, 'center', None)

    entry = AuditLog.objects.create(
        center=center,
        entity_type=entity._meta.model_name,
        entity_id=str(entity.pk),
        action=action,
        old_values=_json_safe(old_values),
        new_values=_json_safe(new_values),
        user_id=str(user.pk) if user is not None else None,
        user_name=user.get_username() if user is not None else '',
        ip_address=context.get('ip_address'),
        user_agent=context.get('user_agent') or '',
        request_path=context.get('request_path') or '',
    )

    logger.info(f"Audit: {action} {entry.entity_type} {entry.entity_id}")
    return entry
