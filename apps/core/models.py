# core/models.py

"""
Core models for the tutorial center administration system:
the Center tenant and the staff members who work for it.
"""

from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones
from utils.models import BaseModel, CenterScopedModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# CENTER (TENANT) MODEL
# =============================================================================

class Center(BaseModel):
    """
    A tutorial center or school. Owns every student, staff member and fee
    record in the system; all tenant queries are scoped by it.
    """

    SUBSCRIPTION_TIER_CHOICES = [
        ('micro', 'Micro'),
        ('starter', 'Starter'),
        ('standard', 'Standard'),
        ('premium', 'Premium'),
    ]

    # -------------------------------------------------------------------------
    # IDENTIFICATION & CONTACT
    # -------------------------------------------------------------------------

    name = models.CharField("Center Name", max_length=200)
    phone = models.CharField("Phone", max_length=30, blank=True)
    email = models.EmailField("Email", blank=True)
    address = models.TextField("Address", blank=True)

    # -------------------------------------------------------------------------
    # BANKING DETAILS (printed on statements)
    # -------------------------------------------------------------------------

    bank_name = models.CharField("Bank Name", max_length=100, blank=True)
    account_number = models.CharField("Account Number", max_length=50, blank=True)
    branch_code = models.CharField("Branch Code", max_length=20, blank=True)

    # -------------------------------------------------------------------------
    # LOCALE
    # -------------------------------------------------------------------------

    currency_code = models.CharField("Currency Code", max_length=3, default='ZAR')
    currency_symbol = models.CharField("Currency Symbol", max_length=5, default='R')
    timezone = models.CharField(
        "Operational Timezone",
        max_length=63,
        default='Africa/Johannesburg',
        help_text="IANA timezone used for fee dates and audit timestamps"
    )

    # -------------------------------------------------------------------------
    # SUBSCRIPTION & MODULES
    # -------------------------------------------------------------------------

    subscription_tier = models.CharField(
        "Subscription Tier",
        max_length=10,
        choices=SUBSCRIPTION_TIER_CHOICES,
        default='starter',
        db_index=True
    )
    enabled_modules = models.JSONField(
        "Enabled Modules",
        default=dict,
        blank=True,
        help_text='Per-module switches, e.g. {"hostel": false}. Missing modules are enabled.'
    )
    is_active = models.BooleanField("Active", default=True, db_index=True)

    class Meta:
        verbose_name = "Center"
        verbose_name_plural = "Centers"
        ordering = ['name']

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.timezone and self.timezone not in available_timezones():
            raise ValidationError({'timezone': f"Unknown timezone: {self.timezone}"})

    def get_timezone(self):
        """ZoneInfo for this center, falling back to the project default."""
        try:
            return ZoneInfo(self.timezone or settings.TIME_ZONE)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Invalid timezone '{self.timezone}' on center {self.pk}")
            return ZoneInfo(settings.TIME_ZONE)

    def is_module_enabled(self, module):
        return bool((self.enabled_modules or {}).get(module, True))


# =============================================================================
# STAFF MEMBER MODEL
# =============================================================================

class StaffMember(CenterScopedModel):
    """Links a login to the center it works for."""

    ROLE_CHOICES = [
        ('center_admin', 'Center Administrator'),
        ('center_staff', 'Center Staff'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="User",
        on_delete=models.CASCADE,
        related_name='staff_profiles'
    )
    full_name = models.CharField("Full Name", max_length=200, blank=True)
    role = models.CharField("Role", max_length=20, choices=ROLE_CHOICES, default='center_staff')
    is_active = models.BooleanField("Active", default=True, db_index=True)

    class Meta:
        verbose_name = "Staff Member"
        verbose_name_plural = "Staff Members"
        constraints = [
            models.UniqueConstraint(fields=['center', 'user'], name='unique_staff_per_center'),
        ]

    def __str__(self):
        return f"{self.full_name or self.user.get_username()} ({self.get_role_display()})"

    def clean(self):
        super().clean()
        from core.services import SubscriptionLimitService

        # Only newly added, active center_staff count toward the plan limit
        if self._state.adding and self.center_id and self.role == 'center_staff' and self.is_active:
            SubscriptionLimitService.enforce_staff_limit(self.center)
