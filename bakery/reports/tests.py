"""
Test suite for sales reports
Tests: bucket boundaries, week start, selected weekday, completed-only totals, owner scoping
"""
from datetime import datetime, date
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from bakery.core.exceptions import ValidationError
from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bakery.orders.models import Order
from bakery.reports.aggregator import (
    day_bounds, week_bounds, month_bounds, weekday_bounds, sales_summary,
)


def local(*args):
    return timezone.make_aware(datetime(*args), timezone.get_current_timezone())


def create_sale(owner, amount, created_at, status='completed'):
    order = TestDataFactory.create_order(owner, total_amount=amount, status=status)
    # created_at is auto_now_add, so move it with an update
    Order.objects.filter(pk=order.pk).update(created_at=created_at)
    return order


@override_settings(TIME_ZONE='America/Mexico_City')
class BucketBoundaryTests(TestCase):
    """Test bucket boundaries in local time"""

    def setUp(self):
        # A Wednesday
        self.now = local(2024, 5, 15, 13, 30)

    def test_day(self):
        start, end = day_bounds(self.now)
        self.assertEqual((start, end), (local(2024, 5, 15), local(2024, 5, 16)))

    def test_week_starts_monday(self):
        start, end = week_bounds(self.now)
        self.assertEqual((start, end), (local(2024, 5, 13), local(2024, 5, 20)))

    def test_week_start_configurable(self):
        start, _ = week_bounds(self.now, week_start=6)
        self.assertEqual(start, local(2024, 5, 12))

    def test_month_and_december_rollover(self):
        self.assertEqual(month_bounds(self.now), (local(2024, 5, 1), local(2024, 6, 1)))
        self.assertEqual(month_bounds(local(2024, 12, 31, 23)), (local(2024, 12, 1), local(2025, 1, 1)))

    def test_selected_weekday_in_current_week(self):
        # Sunday=0 falls at the end of a Monday-start week
        self.assertEqual(weekday_bounds(self.now, 0)[0], local(2024, 5, 19))
        self.assertEqual(weekday_bounds(self.now, 1)[0], local(2024, 5, 13))
        self.assertEqual(weekday_bounds(self.now, 6)[0], local(2024, 5, 18))

    def test_invalid_weekday(self):
        with self.assertRaises(ValidationError):
            weekday_bounds(self.now, 7)


@override_settings(TIME_ZONE='America/Mexico_City')
class SalesSummaryTests(TestCase):
    """Test aggregated totals"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.now = local(2024, 5, 15, 13, 30)

    def test_totals_per_bucket(self):
        create_sale(self.user, '10.00', local(2024, 5, 15, 9))
        create_sale(self.user, '5.00', local(2024, 5, 13, 0))
        create_sale(self.user, '7.00', local(2024, 5, 2, 12))
        create_sale(self.user, '100.00', local(2024, 4, 30, 23, 59))

        summary = sales_summary(self.user, weekday=1, now=self.now)
        self.assertEqual(summary['day'].total, Decimal('10.00'))
        self.assertEqual(summary['week'].total, Decimal('15.00'))
        self.assertEqual(summary['week'].count, 2)
        self.assertEqual(summary['month'].total, Decimal('22.00'))
        self.assertEqual(summary['weekday'].total, Decimal('5.00'))

    def test_half_open_end(self):
        create_sale(self.user, '9.00', local(2024, 5, 16, 0))
        summary = sales_summary(self.user, now=self.now)
        self.assertEqual(summary['day'].total, Decimal('0.00'))

    def test_only_completed_orders_count(self):
        create_sale(self.user, '10.00', local(2024, 5, 15, 9), status='pending')
        create_sale(self.user, '10.00', local(2024, 5, 15, 9), status='cancelled')
        summary = sales_summary(self.user, now=self.now)
        self.assertEqual(summary['day'].total, Decimal('0.00'))

    def test_other_owner_excluded(self):
        create_sale(TestDataFactory.create_user(), '10.00', local(2024, 5, 15, 9))
        summary = sales_summary(self.user, now=self.now)
        self.assertEqual(summary['day'].count, 0)

    def test_week_days_zero_filled(self):
        create_sale(self.user, '4.00', local(2024, 5, 14, 20))
        days = sales_summary(self.user, now=self.now)['week_days']
        self.assertEqual(len(days), 7)
        self.assertEqual(days[0]['date'], date(2024, 5, 13))
        self.assertEqual(days[1]['total'], Decimal('4.00'))
        self.assertEqual(days[2]['total'], Decimal('0.00'))


class SalesSummaryApiTests(TestCase):
    """Test the sales summary endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_sales_summary(self):
        TestDataFactory.create_order(self.user, total_amount='12.50')
        response = self.client.get('/api/v1/reports/sales-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['today']['total'], 12.5)
        self.assertEqual(response.data['this_month']['count'], 1)

    def test_selected_weekday(self):
        response = self.client.get('/api/v1/reports/sales-summary/?weekday=0')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['selected_weekday']['name'], 'Sunday')

    def test_invalid_weekday(self):
        self.assertEqual(
            self.client.get('/api/v1/reports/sales-summary/?weekday=abc').status_code,
            status.HTTP_400_BAD_REQUEST,
        )
        self.assertEqual(
            self.client.get('/api/v1/reports/sales-summary/?weekday=9').status_code,
            status.HTTP_400_BAD_REQUEST,
        )
