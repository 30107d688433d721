"""
Tests for cash-close reconciliation.

Tests cover:
- Expected cash computation
- Recorded difference
- Pending-close and cash-limit alerts
- Session dismissal and history
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from fleamarket.errors import ValidationError
from fleamarket.models import Store, User, Product, CashClose
from fleamarket.services.cash_close_service import CashCloseService, DISMISSED_ALERTS_KEY
from fleamarket.services.checkout_service import CheckoutService
from fleamarket.services.return_service import ReturnService


# Tuesday
NOW = datetime(2026, 3, 10, 11, 0)


class TestCashCloseSetup:
    """Shared fixtures for cash close tests."""

    @pytest.fixture
    def centro(self, init_database):
        return Store.query.filter_by(name='Tienda Centro').first()

    @pytest.fixture
    def seller(self, init_database):
        return User.query.filter_by(email='seller@test.com').first()

    @pytest.fixture
    def admin(self, init_database):
        return User.query.filter_by(email='admin@test.com').first()

    def sell(self, store, user, sku, quantity=1, method='cash', at=NOW):
        product = Product.query.filter_by(sku=sku).first()
        return CheckoutService.submit_sale(
            store, user, [{'product_id': product.id, 'quantity': quantity}],
            payment_method=method, now=at
        )

    @pytest.fixture
    def mixed_sales(self, centro, seller):
        """500 + 250 cash, 400 card."""
        return [
            self.sell(centro, seller, 'ROP-001'),
            self.sell(centro, seller, 'ROP-002', at=NOW + timedelta(minutes=5)),
            self.sell(centro, seller, 'ACC-001', method='card', at=NOW + timedelta(minutes=10)),
        ]


class TestExpectedCash(TestCashCloseSetup):
    """Expected = today's cash sales - cash counted in today's closes."""

    def test_only_cash_sales_count(self, centro, mixed_sales):
        assert CashCloseService.compute_expected_cash(centro.id, NOW.date()) == Decimal('750.00')

    def test_previous_closes_are_subtracted(self, centro, seller, mixed_sales):
        CashCloseService.record_close(centro, seller, 'morning', Decimal('700'),
                                      now=NOW + timedelta(hours=1, minutes=5))
        assert CashCloseService.compute_expected_cash(centro.id, NOW.date()) == Decimal('50.00')

    def test_other_days_ignored(self, centro, seller, mixed_sales):
        self.sell(centro, seller, 'ROP-001', at=NOW - timedelta(days=1))
        assert CashCloseService.compute_expected_cash(centro.id, NOW.date()) == Decimal('750.00')

    def test_returned_sales_excluded(self, centro, seller, admin, mixed_sales):
        token = ReturnService.generate_super_token(admin, now=NOW + timedelta(minutes=18))
        ReturnService.process_return(mixed_sales[1], token.code, seller, now=NOW + timedelta(minutes=20))
        assert CashCloseService.compute_expected_cash(centro.id, NOW.date()) == Decimal('500.00')

    def test_no_sales(self, centro):
        assert CashCloseService.compute_expected_cash(centro.id, NOW.date()) == Decimal('0.00')


class TestRecordClose(TestCashCloseSetup):
    """Persisted closes."""

    def test_short_register(self, centro, seller, mixed_sales):
        close = CashCloseService.record_close(centro, seller, 'manual', Decimal('700'), 'faltante',
                                              now=NOW + timedelta(hours=1))
        assert Decimal(str(close.expected_amount)) == Decimal('750.00')
        assert Decimal(str(close.difference)) == Decimal('-50.00')
        assert close.close_label == 'Corte de Caja'
        assert close.close_date == NOW.date()

    def test_over_register(self, centro, seller, mixed_sales):
        close = CashCloseService.record_close(centro, seller, 'manual', '760.25',
                                              now=NOW + timedelta(hours=1))
        assert Decimal(str(close.difference)) == Decimal('10.25')

    def test_snapshot_since_last_close(self, centro, seller, mixed_sales):
        close = CashCloseService.record_close(centro, seller, 'manual', Decimal('750'),
                                              now=NOW + timedelta(hours=1))
        assert close.sales_count == 3
        assert Decimal(str(close.card_sales)) == Decimal('400.00')
        assert Decimal(str(close.card_commission)) == Decimal('16.00')

        self.sell(centro, seller, 'ROP-002', at=NOW + timedelta(hours=2))
        second = CashCloseService.record_close(centro, seller, 'manual', Decimal('250'),
                                               now=NOW + timedelta(hours=3))
        assert second.sales_count == 1
        assert Decimal(str(second.expected_amount)) == Decimal('250.00')
        assert Decimal(str(second.difference)) == Decimal('0.00')

    def test_invalid_type(self, centro, seller):
        with pytest.raises(ValidationError):
            CashCloseService.record_close(centro, seller, 'midnight', Decimal('10'), now=NOW)

    @pytest.mark.parametrize('amount', [None, '', Decimal('-1'), 'abc', '1,200', 'NaN', 'Infinity'])
    def test_invalid_amount(self, centro, seller, amount):
        with pytest.raises(ValidationError):
            CashCloseService.record_close(centro, seller, 'manual', amount, now=NOW)
        assert CashClose.query.count() == 0

    def test_repeated_close_accepted(self, centro, seller):
        CashCloseService.record_close(centro, seller, 'morning', Decimal('0'), now=NOW)
        CashCloseService.record_close(centro, seller, 'morning', Decimal('0'), now=NOW)
        assert CashClose.query.count() == 2


class TestCashAlerts(TestCashCloseSetup):
    """Pending-close and cash-limit alerts."""

    def alert_ids(self, store, now, dismissed=()):
        return [a['id'] for a in CashCloseService.get_alerts(store.id, now, dismissed)]

    def test_no_alert_within_grace(self, centro):
        assert self.alert_ids(centro, NOW.replace(hour=12, minute=29)) == []

    def test_alert_after_grace(self, centro):
        assert self.alert_ids(centro, NOW.replace(hour=12, minute=31)) == ['pending-morning']

    def test_alert_cleared_by_close(self, centro, seller):
        at = NOW.replace(hour=12, minute=40)
        CashCloseService.record_close(centro, seller, 'morning', Decimal('0'), now=at)
        assert self.alert_ids(centro, at) == []

    def test_only_missing_types(self, centro, seller):
        CashCloseService.record_close(centro, seller, 'morning', Decimal('0'),
                                      now=NOW.replace(hour=12, minute=5))
        ids = self.alert_ids(centro, NOW.replace(hour=20, minute=45))
        assert ids == ['pending-afternoon', 'pending-evening']

    def test_cash_limit_alert(self, centro, seller):
        self.sell(centro, seller, 'ROP-001', quantity=4)
        ids = self.alert_ids(centro, NOW + timedelta(minutes=1))
        assert 'cash-limit' in ids

    def test_cash_limit_clears_after_close(self, centro, seller):
        self.sell(centro, seller, 'ROP-001', quantity=4)
        CashCloseService.record_close(centro, seller, 'limit', Decimal('2000'),
                                      now=NOW + timedelta(minutes=5))
        assert 'cash-limit' not in self.alert_ids(centro, NOW + timedelta(minutes=6))

    def test_dismissed_alert_hidden(self, centro):
        at = NOW.replace(hour=13)
        assert self.alert_ids(centro, at, dismissed=['pending-morning']) == []

    def test_dismiss_alert_stores_in_session(self):
        store = {}
        CashCloseService.dismiss_alert(store, 'cash-limit')
        CashCloseService.dismiss_alert(store, 'cash-limit')
        assert store[DISMISSED_ALERTS_KEY] == ['cash-limit']


class TestCashCloseHistory(TestCashCloseSetup):

    def test_grouped_by_day_newest_first(self, centro, seller):
        CashCloseService.record_close(centro, seller, 'morning', Decimal('100'),
                                      now=NOW - timedelta(days=1))
        CashCloseService.record_close(centro, seller, 'morning', Decimal('50'), now=NOW)
        CashCloseService.record_close(centro, seller, 'evening', Decimal('25'),
                                      now=NOW + timedelta(hours=9))

        history = CashCloseService.history(centro.id, days=7, now=NOW + timedelta(hours=10))
        assert [day['date'] for day in history] == ['2026-03-10', '2026-03-09']
        assert history[0]['total_counted'] == 75.0
        assert len(history[0]['closes']) == 2
