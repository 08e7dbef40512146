# fees/signals.py

"""
Fee Management Signal Handlers

- Keep StudentFee.status in step with the amounts
- Number new payments
"""

from django.db.models.signals import pre_save
from django.dispatch import receiver
import logging

from fees.utils import generate_payment_number

logger = logging.getLogger(__name__)


@receiver(pre_save, sender='fees.StudentFee')
def student_fee_pre_save(sender, instance, **kwargs):
    """Re-derive the denormalized status column."""
    previous = instance.status
    instance.refresh_status()

    if previous != instance.status and not instance._state.adding:
        logger.debug(f"Fee {instance.pk} status {previous} -> {instance.status}")


@receiver(pre_save, sender='fees.Payment')
def payment_pre_save(sender, instance, **kwargs):
    """Auto-generate payment number if not set."""
    if kwargs.get('raw', False):
        return

    if not instance.payment_number:
        instance.payment_number = generate_payment_number(instance.center, instance.payment_date)
        logger.info(f"Generated payment number: {instance.payment_number}")
