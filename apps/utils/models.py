# utils/models.py

"""
Base models for the tutorial center administration system.

Key Features:
- UUID primary keys and center-timezone timestamps
- User and IP tracking from the thread-local request context
- Automatic center (tenant) stamping and query scoping
- Audit log for sensitive financial operations
"""

from django.db import models
from centerdesk.managers import get_current_center, CenterManager
import uuid
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# BASE MODEL
# =============================================================================

class BaseModel(models.Model):
    """
    Abstract base with audit trail fields.

    created_at / updated_at are set in save() from the center's operational
    timezone rather than via auto_now, and the acting user / IP are taken
    from utils.context when a request is being served.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField("Created At", db_index=True)
    updated_at = models.DateTimeField("Updated At", db_index=True)

    # CharField so that audit attribution survives user deletion
    created_by_id = models.CharField("Created By ID", max_length=50, null=True, blank=True)
    updated_by_id = models.CharField("Updated By ID", max_length=50, null=True, blank=True)

    created_from_ip = models.GenericIPAddressField("Created From IP", null=True, blank=True)
    updated_from_ip = models.GenericIPAddressField("Updated From IP", null=True, blank=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        from utils.context import get_request_context
        from core.utils import get_center_current_time

        is_new = self._state.adding
        now = get_center_current_time()

        if is_new:
            if not self.created_at:
                self.created_at = now
            if not self.updated_at:
                self.updated_at = now
        else:
            self.updated_at = now

        context = get_request_context()

        if context:
            user = context.get('user')
            ip_address = context.get('ip_address')

            if is_new:
                if user and not self.created_by_id:
                    self.created_by_id = str(user.pk)
                if ip_address and not self.created_from_ip:
                    self.created_from_ip = ip_address

            if user:
                self.updated_by_id = str(user.pk)
            if ip_address:
                self.updated_from_ip = ip_address
        elif is_new:
            logger.debug(
                f"No request context available when creating {self.__class__.__name__}. "
                f"Audit fields will not be populated."
            )

        return super().save(*args, **kwargs)


# =============================================================================
# CENTER SCOPED MODEL - TENANT-OWNED DATA
# =============================================================================

class CenterScopedModel(BaseModel):
    """
    Base for every row owned by a center.

    The center is taken from the active CenterContext when not given
    explicitly, and the default manager only sees the active center's rows.
    """

    center = models.ForeignKey(
        'core.Center',
        verbose_name="Center",
        on_delete=models.CASCADE,
        related_name='+',
    )

    objects = CenterManager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self.center_id:
            center = get_current_center()
            if center is None:
                raise ValueError(
                    f"{self.__class__.__name__} requires a center; none given and no center context is active"
                )
            self.center = center
        return super().save(*args, **kwargs)


# =============================================================================
# AUDIT LOG MODEL
# =============================================================================

class AuditLog(models.Model):
    """
    Audit trail for sensitive operations (payment reversals, refunds,
    student status changes made as part of a refund).
    """

    ACTION_CHOICES = (
        ('CREATE', 'Created'),
        ('UPDATE', 'Updated'),
        ('DELETE', 'Deleted'),
        ('REVERSE', 'Reversed'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    center = models.ForeignKey(
        'core.Center',
        on_delete=models.CASCADE,
        related_name='audit_logs',
        null=True,
        blank=True,
    )
    entity_type = models.CharField("Entity Type", max_length=100, db_index=True)
    entity_id = models.CharField("Entity ID", max_length=100, db_index=True)
    action = models.CharField("Action", max_length=10, choices=ACTION_CHOICES, db_index=True)

    old_values = models.JSONField("Old Values", default=dict, blank=True)
    new_values = models.JSONField("New Values", default=dict, blank=True)

    user_id = models.CharField("User ID", max_length=50, null=True, blank=True, db_index=True)
    user_name = models.CharField("User Name", max_length=255, blank=True)

    timestamp = models.DateTimeField("Timestamp", db_index=True)
    ip_address = models.GenericIPAddressField("IP Address", null=True, blank=True)
    user_agent = models.TextField("User Agent", blank=True)
    request_path = models.CharField("Request Path", max_length=255, blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id']),
            models.Index(fields=['user_id', 'timestamp']),
        ]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} {self.entity_type} {self.entity_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        from core.utils import get_center_current_time

        if not self.timestamp:
            self.timestamp = get_center_current_time()

        return super().save(*args, **kwargs)
