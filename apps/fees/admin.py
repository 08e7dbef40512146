# fees/admin.py

from django.contrib import admin

from utils.admin import BaseModelAdmin
from .models import StudentFee, Payment, PaymentAllocation, PaymentReversal, Refund


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    fk_name = 'payment'
    fields = ['fee', 'amount']
    readonly_fields = ['fee', 'amount']
    extra = 0
    can_delete = False


@admin.register(StudentFee)
class StudentFeeAdmin(BaseModelAdmin):
    list_display = ['student', 'fee_month', 'fee_type', 'amount_due', 'amount_paid', 'status']
    list_filter = ['status', 'fee_type', 'fee_month', 'center']
    search_fields = ['student__full_name', 'student__student_number']
    readonly_fields = ['status']


@admin.register(Payment)
class PaymentAdmin(BaseModelAdmin):
    list_display = ['payment_number', 'student', 'amount', 'payment_method', 'payment_date', 'status']
    list_filter = ['status', 'payment_method', 'center']
    search_fields = ['payment_number', 'reference_number', 'student__full_name']
    readonly_fields = ['payment_number', 'status', 'credit_added']
    inlines = [PaymentAllocationInline]


@admin.register(PaymentReversal)
class PaymentReversalAdmin(BaseModelAdmin):
    list_display = ['original_payment', 'student', 'amount', 'reversed_by', 'reversed_at']
    search_fields = ['original_payment__payment_number', 'student__full_name']


@admin.register(Refund)
class RefundAdmin(BaseModelAdmin):
    list_display = ['student', 'original_payment', 'amount', 'reason', 'refund_date']
    list_filter = ['reason', 'student_status_updated', 'center']
    search_fields = ['student__full_name', 'original_payment__payment_number']
