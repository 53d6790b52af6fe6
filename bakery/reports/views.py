import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bakery.core.permissions import IsApprovedUser
from .aggregator import sales_summary as summarize_sales, WEEKDAY_NAMES

logger = logging.getLogger('bakery.reports')


def _bucket_payload(bucket):
    return {
        'start': bucket.start.isoformat(),
        'end': bucket.end.isoformat(),
        'total': float(bucket.total),
        'count': bucket.count,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def sales_summary(request):
    """Completed-sale totals for today, this week, this month and a chosen weekday"""
    weekday = request.query_params.get('weekday')
    if weekday is not None:
        try:
            weekday = int(weekday)
        except ValueError:
            return Response(
                {'error': 'Invalid weekday', 'message': 'weekday must be a number from 0 (Sunday) to 6 (Saturday)'},
                status=status.HTTP_400_BAD_REQUEST,
            )

    summary = summarize_sales(request.user, weekday=weekday)
    logger.debug("Sales summary for user %s (weekday %s)", request.user.pk, summary['selected_weekday'])

    return Response({
        'today': _bucket_payload(summary['day']),
        'this_week': _bucket_payload(summary['week']),
        'this_month': _bucket_payload(summary['month']),
        'selected_weekday': {
            'weekday': summary['selected_weekday'],
            'name': WEEKDAY_NAMES[summary['selected_weekday']],
            **_bucket_payload(summary['weekday']),
        },
        'week_days': [
            {'date': day['date'].isoformat(), 'total': float(day['total']), 'count': day['count']}
            for day in summary['week_days']
        ],
    })
