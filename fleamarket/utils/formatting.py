"""
Formatting Utilities
Currency, date and day-type helpers (es-MX conventions)
"""

from datetime import datetime, date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from fleamarket.errors import ValidationError

CENTS = Decimal('0.01')

DAY_NAMES = ['Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes', 'Sábado', 'Domingo']
MONTH_NAMES = ['enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio', 'julio',
               'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre']


def to_decimal(value):
    """Coerce a number or numeric string to Decimal rounded to cents"""
    if value is None or value == '':
        return Decimal('0.00')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"'{value}' is not a valid amount")
    if not amount.is_finite():
        raise ValidationError(f"'{value}' is not a valid amount")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(amount):
    """
    Format amount as MXN currency

    Examples:
        1234.5 -> "$1,234.50"
        -40 -> "-$40.00"
    """
    value = to_decimal(amount)
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.2f}"


def format_number(value):
    return f"{to_decimal(value):,.2f}"


def format_date(dt):
    """Format as dd/mm/yyyy"""
    if not dt:
        return ''
    return dt.strftime('%d/%m/%Y')


def format_datetime(dt):
    """Format as dd/mm/yyyy HH:MM"""
    if not dt:
        return ''
    return dt.strftime('%d/%m/%Y %H:%M')


def format_long_date(dt):
    """e.g. 'Lunes, 5 de enero de 2026'"""
    if not dt:
        return ''
    return f"{DAY_NAMES[dt.weekday()]}, {dt.day} de {MONTH_NAMES[dt.month - 1]} de {dt.year}"


def get_day_type(dt=None):
    """weekend for Saturday and Sunday, weekday otherwise"""
    dt = dt or datetime.now()
    return 'weekend' if dt.weekday() >= 5 else 'weekday'


def get_day_name(dt=None):
    dt = dt or datetime.now()
    return DAY_NAMES[dt.weekday()]


def day_bounds(day):
    """Start and end datetimes of a calendar day"""
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def today_range(now=None):
    now = now or datetime.now()
    return day_bounds(now.date())


def week_range(now=None):
    """Monday 00:00 of the current week until now"""
    now = now or datetime.now()
    monday = (now - timedelta(days=now.weekday())).date()
    return datetime.combine(monday, datetime.min.time()), now


def month_range(now=None):
    now = now or datetime.now()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0), now


def period_range(period, now=None):
    """Resolve 'day', 'week' or 'month' to a (start, end) pair"""
    ranges = {
        'day': today_range,
        'today': today_range,
        'week': week_range,
        'month': month_range,
    }
    if period not in ranges:
        raise ValueError(f"Unknown period: {period}")
    return ranges[period](now)


def parse_date(value):
    """Parse YYYY-MM-DD, returning None for empty input"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, '%Y-%m-%d').date()


def parse_datetime(value):
    """Parse an ISO datetime or date string"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return datetime.combine(parse_date(value), datetime.min.time())
