# core/utils.py

"""
Central utilities for the tutorial center administration system.
Money formatting, VAT, center-local time and CSV export helpers.
"""
from django.conf import settings
from django.http import HttpResponse
from django.utils import timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from zoneinfo import ZoneInfo
import csv
import logging

from centerdesk.managers import get_current_center

logger = logging.getLogger(__name__)

# South African VAT
VAT_RATE = Decimal('0.15')
VAT_PERCENTAGE = 15

TWO_PLACES = Decimal('0.01')


# =============================================================================
# CURRENCY & MONEY FORMATTING
# =============================================================================

def get_currency_symbol(center=None):
    """
    Currency symbol of the given center, else of the active center,
    else the project default (settings.DEFAULT_CURRENCY_SYMBOL).
    """
    center = center or get_current_center()
    if center is not None and center.currency_symbol:
        return center.currency_symbol
    return getattr(settings, 'DEFAULT_CURRENCY_SYMBOL', 'R')


def safe_decimal(value, default=Decimal('0.00')):
    """
    Safely convert value to Decimal.

    Example:
        >>> safe_decimal("12.50")
        Decimal('12.50')
        >>> safe_decimal("invalid")
        Decimal('0.00')
    """
    if value is None or value == '':
        return default
    try:
        return Decimal(str(value))
    except (ValueError, TypeError, InvalidOperation):
        return default


def round_to_currency(amount):
    """Round to cents, half up."""
    return safe_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_money(amount, center=None, show_decimals=True, compact=False):
    """
    Format an amount in the center currency.

    Args:
        amount: Decimal or numeric value
        center: Center whose symbol to use (defaults to the active center)
        show_decimals: Two decimal places when True, none when False
        compact: Abbreviate thousands / millions ("R 1.2K", "R 3.5M")

    Returns:
        str: e.g. "R 1,234.56"

    Example:
        >>> format_money(Decimal('1234.5'))
        'R 1,234.50'
        >>> format_money(2500, compact=True)
        'R 2.5K'
    """
    symbol = get_currency_symbol(center)
    value = safe_decimal(amount)

    if compact and abs(value) >= 1000:
        if abs(value) >= 1000000:
            scaled, suffix = value / Decimal('1000000'), 'M'
        else:
            scaled, suffix = value / Decimal('1000'), 'K'
        scaled = scaled.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP).normalize()
        return f"{symbol} {scaled:f}{suffix}"

    if show_decimals:
        formatted = f"{value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP):,.2f}"
    else:
        formatted = f"{value.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,.0f}"

    return f"{symbol} {formatted}"


def parse_money(value, center=None):
    """
    Parse a formatted money string back to a Decimal.

    Removes the currency symbol, whitespace and thousand separators.
    Unparseable input yields Decimal('0').

    Example:
        >>> parse_money("R 1,234.56")
        Decimal('1234.56')
    """
    if value is None:
        return Decimal('0')

    cleaned = str(value).replace(get_currency_symbol(center), '')
    cleaned = ''.join(cleaned.split()).replace(',', '')

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal('0')


# =============================================================================
# VAT HELPERS
# =============================================================================

def get_vat_amount(amount):
    """VAT on a VAT-exclusive amount."""
    return round_to_currency(safe_decimal(amount) * VAT_RATE)


def get_amount_with_vat(amount):
    """VAT-inclusive amount for a VAT-exclusive base."""
    return round_to_currency(safe_decimal(amount) * (1 + VAT_RATE))


def get_amount_excluding_vat(amount_with_vat):
    """Base amount contained in a VAT-inclusive amount."""
    return round_to_currency(safe_decimal(amount_with_vat) / (1 + VAT_RATE))


def calculate_percentage(part, whole, decimal_places=2):
    """
    Percentage with safe division.

    Returns:
        Decimal: 0 when whole is 0
    """
    part = safe_decimal(part)
    whole = safe_decimal(whole)

    if whole == 0:
        return Decimal('0').quantize(Decimal(1).scaleb(-decimal_places))

    percentage = (part / whole) * 100
    return percentage.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


# =============================================================================
# TIMEZONE UTILITY FUNCTIONS
# =============================================================================

def get_center_timezone(center=None):
    """
    Operational timezone of the given (or active) center.

    Returns:
        ZoneInfo: defaults to settings.TIME_ZONE outside a center context
    """
    center = center or get_current_center()
    if center is not None:
        return center.get_timezone()
    return ZoneInfo(settings.TIME_ZONE)


def get_center_current_time(center=None):
    """Current time in the center's operational timezone."""
    return timezone.now().astimezone(get_center_timezone(center))


def get_center_today(center=None):
    """
    Today's date in the center's operational timezone.

    Use this instead of date.today() for due dates and month boundaries.
    """
    return get_center_current_time(center).date()


def first_of_month(value):
    """Normalize a date to the first day of its month."""
    return value.replace(day=1)


# =============================================================================
# EXPORT UTILITIES
# =============================================================================

def generate_csv_response(data, filename, headers=None):
    """
    Generate CSV HTTP response from data.

    Args:
        data: List of lists/tuples containing row data
        filename: Output filename
        headers: Optional list of column headers

    Returns:
        HttpResponse: CSV download response
    """
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    writer = csv.writer(response, quoting=csv.QUOTE_ALL)

    if headers:
        writer.writerow(headers)

    for row in data:
        writer.writerow(row)

    return response


def paginate_queryset(request, queryset, per_page=20):
    """
    Paginate a queryset from ?page= / ?limit= query parameters.

    Returns:
        tuple: (page object, paginator)
    """
    from django.core.paginator import Paginator, EmptyPage, PageNotAnInteger

    try:
        per_page = int(request.GET.get('limit', per_page))
    except (TypeError, ValueError):
        pass
    per_page = max(1, min(per_page, 100))

    paginator = Paginator(queryset, per_page)
    page_number = request.GET.get('page', 1)

    try:
        page = paginator.page(page_number)
    except PageNotAnInteger:
        page = paginator.page(1)
    except EmptyPage:
        page = paginator.page(paginator.num_pages)

    return page, paginator
