"""
Sales buckets over completed orders.

All boundaries are computed in the active local time zone and are
half-open: an order created exactly at a bucket's end belongs to the next
bucket. Nothing is cached; every call reads the orders table.
"""
from collections import namedtuple
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, DecimalField, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from bakery.core.exceptions import ValidationError
from bakery.orders.models import Order

Bucket = namedtuple('Bucket', ['start', 'end', 'total', 'count'])

# Sunday=0 ... Saturday=6, as used by the weekday selector
WEEKDAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def _local_midnight(day):
    return timezone.make_aware(datetime.combine(day, time.min), timezone.get_current_timezone())


def day_bounds(now):
    today = timezone.localtime(now).date()
    return _local_midnight(today), _local_midnight(today + timedelta(days=1))


def week_start_date(now, week_start=None):
    if week_start is None:
        week_start = settings.BAKERY['WEEK_START']
    today = timezone.localtime(now).date()
    return today - timedelta(days=(today.weekday() - week_start) % 7)


def week_bounds(now, week_start=None):
    first = week_start_date(now, week_start)
    return _local_midnight(first), _local_midnight(first + timedelta(days=7))


def month_bounds(now):
    first = timezone.localtime(now).date().replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    return _local_midnight(first), _local_midnight(following)


def weekday_bounds(now, weekday, week_start=None):
    """The given weekday (Sunday=0 ... Saturday=6) inside the current week"""
    if isinstance(weekday, bool) or not isinstance(weekday, int) or not 0 <= weekday <= 6:
        raise ValidationError('Weekday must be between 0 (Sunday) and 6 (Saturday)', weekday=weekday)
    if week_start is None:
        week_start = settings.BAKERY['WEEK_START']
    python_weekday = (weekday - 1) % 7
    first = week_start_date(now, week_start)
    day = first + timedelta(days=(python_weekday - week_start) % 7)
    return _local_midnight(day), _local_midnight(day + timedelta(days=1))


def completed_orders(owner):
    return Order.objects.filter(owner=owner, status=Order.STATUS_COMPLETED)


def bucket(orders, start, end):
    totals = orders.filter(created_at__gte=start, created_at__lt=end).aggregate(
        total=Sum('total_amount', output_field=DecimalField()),
        count=Count('id'),
    )
    return Bucket(start, end, totals['total'] or Decimal('0.00'), totals['count'])


def daily_totals(orders, start, end):
    """Per local date totals between start and end, zero-filled"""
    tz = timezone.get_current_timezone()
    rows = orders.filter(created_at__gte=start, created_at__lt=end).annotate(
        day=TruncDate('created_at', tzinfo=tz)
    ).values('day').annotate(
        total=Sum('total_amount', output_field=DecimalField()),
        count=Count('id'),
    ).order_by('day')
    by_day = {row['day']: row for row in rows}

    days = []
    day = timezone.localtime(start).date()
    last = timezone.localtime(end).date()
    while day < last:
        row = by_day.get(day)
        days.append({
            'date': day,
            'total': row['total'] if row else Decimal('0.00'),
            'count': row['count'] if row else 0,
        })
        day += timedelta(days=1)
    return days


def sales_summary(owner, weekday=None, now=None):
    """Today, this week, this month and one weekday of this week for ``owner``"""
    now = now or timezone.now()
    if weekday is None:
        # Today's weekday in Sunday=0 numbering
        weekday = (timezone.localtime(now).weekday() + 1) % 7

    orders = completed_orders(owner)
    week_start, week_end = week_bounds(now)
    return {
        'day': bucket(orders, *day_bounds(now)),
        'week': bucket(orders, week_start, week_end),
        'month': bucket(orders, *month_bounds(now)),
        'weekday': bucket(orders, *weekday_bounds(now, weekday)),
        'selected_weekday': weekday,
        'week_days': daily_totals(orders, week_start, week_end),
    }
