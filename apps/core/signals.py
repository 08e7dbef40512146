# core/signals.py

"""
Keep the middleware's user → center cache in step with staff profiles.
"""

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from centerdesk.middleware import CenterMiddleware

logger = logging.getLogger(__name__)


@receiver(post_save, sender='core.StaffMember')
@receiver(post_delete, sender='core.StaffMember')
def staff_member_changed(sender, instance, **kwargs):
    CenterMiddleware.clear_user_cache(instance.user_id)
