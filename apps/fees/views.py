# fees/views.py

"""
Fee Management Views

JSON endpoints and file downloads for:
- Outstanding fees (report, CSV, Excel) and student statements
- Center fee summary and monthly payment status
- Fee generation, payments, reversals and refunds

Every view works on request.center, set by CenterMiddleware.
"""

from django.contrib.auth.decorators import login_required
from django.views.decorators.http import require_http_methods
from django.core.exceptions import ValidationError
from django.http import JsonResponse, Http404
from django.shortcuts import get_object_or_404
from decimal import Decimal
from functools import wraps
import json
import logging

from fees.models import Payment, Refund
from fees.forms import PaymentForm, PaymentReversalForm, RefundForm, BulkFeeGenerationForm
from fees.services import FeeGenerationService, PaymentService, RefundService
from fees.stats import (
    get_outstanding_report, get_fee_summary,
    get_monthly_payment_status, get_monthly_collection_summary,
)
from fees.exports import outstanding_fees_csv, outstanding_fees_excel, statement_pdf_response
from fees.utils import validate_payment_data
from fees.balances import aggregate_balances
from students.models import Student
from core.utils import paginate_queryset

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def _error(message, status=400, errors=None):
    payload = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return JsonResponse(payload, status=status)


def _validation_message(error):
    return '; '.join(error.messages)


def _request_data(request):
    """POST form data, or the decoded body of a JSON request."""
    if request.content_type == 'application/json':
        return json.loads(request.body or b'{}')
    return request.POST


def _report_filters(request):
    def as_int(name):
        value = request.GET.get(name)
        try:
            return int(value) if value else None
        except ValueError:
            raise ValidationError(f"Invalid {name}: {value}")

    year = as_int('year')
    month = as_int('month')

    if month is not None and not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if year is not None and not 1 <= year <= 9999:
        raise ValidationError(f"Invalid year: {year}")

    return {
        'year': year,
        'month': month,
        'fee_type': request.GET.get('fee_type') or None,
    }


def _money(value):
    return str(value) if isinstance(value, Decimal) else value


def _jsonable(data):
    """Decimals as strings, recursively, so amounts keep their precision."""
    if isinstance(data, dict):
        return {str(key): _jsonable(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_jsonable(value) for value in data]
    if isinstance(data, Decimal):
        return _money(data)
    if hasattr(data, 'isoformat'):
        return data.isoformat()
    if data is not None and not isinstance(data, (str, int, float, bool)):
        return str(data)
    return data


def center_view(view_func):
    """
    Require an active center and translate service errors into JSON.

    ValidationError → 400, missing objects → 404, anything else is logged
    and → 500.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if getattr(request, 'center', None) is None:
            return _error("No active center for this account", status=403)

        try:
            return view_func(request, *args, **kwargs)
        except ValidationError as e:
            return _error(_validation_message(e))
        except json.JSONDecodeError:
            return _error("Invalid JSON data.")
        except Http404:
            return _error("Not found.", status=404)
        except Exception as e:
            logger.error(f"Error in {view_func.__name__}: {e}", exc_info=True)
            return _error("Server error. Please try again.", status=500)

    return wrapper


def _payment_dict(payment):
    return {
        'id': str(payment.pk),
        'payment_number': payment.payment_number,
        'student_id': str(payment.student_id),
        'amount': _money(payment.amount),
        'payment_method': payment.payment_method,
        'payment_date': payment.payment_date.isoformat(),
        'status': payment.status,
        'credit_added': _money(payment.credit_added),
    }


def _refund_dict(refund):
    return {
        'id': str(refund.pk),
        'student_id': str(refund.student_id),
        'student_name': refund.student.full_name,
        'payment_id': str(refund.original_payment_id),
        'payment_number': refund.original_payment.payment_number,
        'amount': _money(refund.amount),
        'reason': refund.reason,
        'reason_display': refund.get_reason_display(),
        'reason_notes': refund.reason_notes,
        'student_status_updated': refund.student_status_updated,
        'refund_date': refund.refund_date.isoformat(),
    }


# =============================================================================
# OUTSTANDING FEES
# =============================================================================

@login_required
@require_http_methods(["GET"])
@center_view
def outstanding_fees(request):
    """Students owing money, largest outstanding first."""
    filters = _report_filters(request)
    report = get_outstanding_report(
        request.center,
        search=request.GET.get('search', '').strip() or None,
        **filters
    )
    return JsonResponse({"success": True, **_jsonable(report)})


@login_required
@require_http_methods(["GET"])
@center_view
def export_outstanding_csv(request):
    return outstanding_fees_csv(request.center, **_report_filters(request))


@login_required
@require_http_methods(["GET"])
@center_view
def export_outstanding_excel(request):
    return outstanding_fees_excel(
        request.center,
        search=request.GET.get('search', '').strip() or None,
        **_report_filters(request)
    )


@login_required
@require_http_methods(["GET"])
@center_view
def student_statement(request, student_id):
    """Statement of account PDF for one student."""
    student = get_object_or_404(Student.objects.select_related('center'), pk=student_id)
    return statement_pdf_response(student)


@login_required
@require_http_methods(["GET"])
@center_view
def student_balance(request, student_id):
    student = get_object_or_404(Student, pk=student_id)
    balance = aggregate_balances(
        student.fees.all(), {student.pk: student.credit_balance}
    ).get(student.pk)

    data = balance.as_dict() if balance is not None else {
        'student_id': student.pk,
        'total_due': Decimal('0.00'),
        'total_paid': Decimal('0.00'),
        'outstanding': Decimal('0.00'),
        'credit_balance': student.credit_balance,
        'net_owing': Decimal('0.00'),
        'status': None,
    }
    data['full_name'] = student.full_name
    return JsonResponse({"success": True, "balance": _jsonable(data)})


# =============================================================================
# SUMMARIES
# =============================================================================

@login_required
@require_http_methods(["GET"])
@center_view
def fee_summary(request):
    return JsonResponse({"success": True, "summary": _jsonable(get_fee_summary(request.center))})


@login_required
@require_http_methods(["GET"])
@center_view
def monthly_status(request):
    """Active students bucketed as paid / partial / unpaid / no_fees for one month."""
    filters = _report_filters(request)
    status = get_monthly_payment_status(request.center, filters['year'], filters['month'])
    collections = get_monthly_collection_summary(request.center, filters['year'], filters['month'])

    return JsonResponse({
        "success": True,
        "status": _jsonable(status),
        "collections": _jsonable(collections),
    })


# =============================================================================
# FEE GENERATION
# =============================================================================

@login_required
@require_http_methods(["POST"])
@center_view
def generate_fees(request):
    form = BulkFeeGenerationForm(_request_data(request))
    if not form.is_valid():
        return _error("Invalid data.", errors=form.errors.get_json_data())

    start_month = form.cleaned_data['start_month']
    end_month = form.cleaned_data['end_month']
    student = form.cleaned_data.get('student')

    if student is not None:
        created = FeeGenerationService.generate_monthly_fees(student, start_month, end_month)
        result = {
            'success': True,
            'students_processed': 1,
            'total_fees_generated': created,
            'errors': [],
        }
    else:
        result = FeeGenerationService.generate_for_all_students(request.center, start_month, end_month)

    result['message'] = f"Generated {result['total_fees_generated']} fee(s)"
    return JsonResponse(result, status=200 if result['success'] else 207)


# =============================================================================
# PAYMENTS
# =============================================================================

@login_required
@require_http_methods(["POST"])
@center_view
def record_payment(request):
    form = PaymentForm(_request_data(request))
    if not form.is_valid():
        return _error("Invalid data.", errors=form.errors.get_json_data())

    data = form.cleaned_data
    student = data['student']

    outstanding = aggregate_balances(student.fees.all()).get(student.pk)
    check = validate_payment_data({
        **data,
        'outstanding': outstanding.outstanding if outstanding else Decimal('0.00'),
    })
    if not check['valid']:
        return _error('; '.join(check['errors']))

    result = PaymentService.record_payment(
        student,
        data['amount'],
        payment_method=data['payment_method'],
        payment_date=data.get('payment_date'),
        reference_number=data.get('reference_number'),
        notes=data.get('notes'),
    )

    return JsonResponse({
        "success": True,
        "message": f"Payment {result['payment'].payment_number} recorded",
        "payment": _payment_dict(result['payment']),
        "allocations": _jsonable(result['allocations']),
        "remaining_credit": _money(result['remaining_credit']),
        "warnings": check['warnings'],
    }, status=201)


@login_required
@require_http_methods(["POST"])
@center_view
def reverse_payment(request, payment_id):
    payment = get_object_or_404(Payment, pk=payment_id)

    form = PaymentReversalForm(_request_data(request))
    if not form.is_valid():
        return _error("Invalid data.", errors=form.errors.get_json_data())

    reversal = PaymentService.reverse_payment(payment, form.cleaned_data['reason'], reversed_by=request.user)

    return JsonResponse({
        "success": True,
        "message": f"Payment {payment.payment_number} reversed",
        "reversal_id": str(reversal.pk),
    })


# =============================================================================
# REFUNDS
# =============================================================================

@login_required
@require_http_methods(["GET", "POST"])
@center_view
def refunds(request):
    """GET: refund history, newest first. POST: refund a payment."""
    if request.method == 'GET':
        queryset = Refund.objects.select_related('student', 'original_payment').order_by('-refund_date')
        page, paginator = paginate_queryset(request, queryset)

        return JsonResponse({
            "success": True,
            "refunds": [_refund_dict(refund) for refund in page.object_list],
            "page": page.number,
            "num_pages": paginator.num_pages,
            "count": paginator.count,
        })

    form = RefundForm(_request_data(request))
    if not form.is_valid():
        return _error("Invalid data.", errors=form.errors.get_json_data())

    data = form.cleaned_data
    refund = RefundService.process_refund(
        data['payment'],
        data['amount'],
        data['reason'],
        processed_by=request.user,
        notes=data.get('reason_notes', ''),
        update_student_status=data.get('update_student_status', False),
        center=request.center,
    )

    return JsonResponse({
        "success": True,
        "message": "Refund processed",
        "refund": _refund_dict(refund),
    }, status=201)
