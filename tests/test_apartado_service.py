"""
Tests for the apartado (layaway) lifecycle.

Tests cover:
- Minimum deposit and creation rules
- Installments and automatic completion
- Balance invariant
- Expiry, cancellation and delivery transitions
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from fleamarket.errors import ValidationError, InvalidTransition
from fleamarket.models import db, Store, User, Client, Product, Sale, Apartado
from fleamarket.services.apartado_service import ApartadoService


NOW = datetime(2026, 3, 10, 11, 0)


class TestApartadoSetup:
    """Shared fixtures for apartado tests."""

    @pytest.fixture
    def centro(self, init_database):
        return Store.query.filter_by(name='Tienda Centro').first()

    @pytest.fixture
    def seller(self, init_database):
        return User.query.filter_by(email='seller@test.com').first()

    @pytest.fixture
    def client_record(self, init_database):
        return Client.query.filter_by(client_number='10001').first()

    @pytest.fixture
    def chamarra(self, init_database):
        return Product.query.filter_by(sku='ROP-001').first()

    def items_for(self, product, quantity=1):
        price = Decimal(str(product.price))
        return [{
            'product_id': product.id,
            'name': product.name,
            'category': product.category,
            'price': price,
            'quantity': quantity,
            'promo_discount': Decimal('0.00'),
            'final_price': price * quantity,
        }]

    @pytest.fixture
    def apartado_300(self, centro, seller, client_record, chamarra):
        """Apartado of 300 with a 100 deposit."""
        items = [{'product_id': chamarra.id, 'name': 'Chamarra', 'category': 'Ropa',
                  'price': Decimal('300.00'), 'quantity': 1, 'final_price': Decimal('300.00')}]
        return ApartadoService.create(centro, client_record, items, Decimal('300'), Decimal('100'),
                                      created_by=seller, now=NOW)


class TestMinimumDeposit:
    """ceil(10% of total) in whole pesos."""

    def test_round_amount(self, fresh_app):
        assert ApartadoService.minimum_deposit(Decimal('500')) == Decimal('50')

    def test_rounds_up(self, fresh_app):
        assert ApartadoService.minimum_deposit(Decimal('505')) == Decimal('51')
        assert ApartadoService.minimum_deposit(Decimal('1.50')) == Decimal('1')

    def test_custom_percent(self, fresh_app):
        assert ApartadoService.minimum_deposit(Decimal('500'), percent=20) == Decimal('100')


class TestCreateApartado(TestApartadoSetup):
    """Creation rules."""

    def test_deposit_below_minimum_rejected(self, centro, seller, client_record, chamarra):
        with pytest.raises(ValidationError):
            ApartadoService.create(centro, client_record, self.items_for(chamarra),
                                   Decimal('500'), Decimal('40'), created_by=seller, now=NOW)
        assert Apartado.query.count() == 0

    def test_minimum_deposit_accepted(self, centro, seller, client_record, chamarra):
        apartado = ApartadoService.create(centro, client_record, self.items_for(chamarra),
                                          Decimal('500'), Decimal('50'), created_by=seller, now=NOW)
        assert apartado.status == 'active'
        assert Decimal(str(apartado.remaining_balance)) == Decimal('450.00')
        assert Decimal(str(apartado.deposit_required)) == Decimal('50')

    def test_guest_checkout_cannot_create(self, centro, seller, chamarra):
        with pytest.raises(ValidationError):
            ApartadoService.create(centro, None, self.items_for(chamarra),
                                   Decimal('500'), Decimal('100'), created_by=seller, now=NOW)

    def test_deposit_above_total_rejected(self, centro, seller, client_record, chamarra):
        with pytest.raises(ValidationError):
            ApartadoService.create(centro, client_record, self.items_for(chamarra),
                                   Decimal('500'), Decimal('600'), created_by=seller, now=NOW)

    def test_empty_items_rejected(self, centro, seller, client_record):
        with pytest.raises(ValidationError):
            ApartadoService.create(centro, client_record, [], Decimal('500'), Decimal('100'),
                                   created_by=seller, now=NOW)

    def test_due_date_is_fifteen_days(self, apartado_300):
        assert apartado_300.due_date == NOW + timedelta(days=15)
        assert ApartadoService.days_remaining(apartado_300, NOW) == 15

    def test_client_snapshot(self, apartado_300):
        assert apartado_300.client_name == 'Maria Lopez'
        assert apartado_300.client_phone == '5551110000'
        assert apartado_300.client_number == '10001'

    def test_numbers_are_sequential_per_store(self, centro, seller, client_record, chamarra, apartado_300):
        second = ApartadoService.create(centro, client_record, self.items_for(chamarra),
                                        Decimal('500'), Decimal('50'), created_by=seller, now=NOW)
        norte = Store.query.filter_by(name='Tienda Norte').first()
        other = ApartadoService.create(norte, client_record, self.items_for(chamarra),
                                       Decimal('500'), Decimal('50'), created_by=seller, now=NOW)

        assert apartado_300.number == 'APT-0001'
        assert second.number == 'APT-0002'
        assert other.number == 'APT-0001'

    def test_deposit_recorded_as_sale(self, apartado_300):
        sale = Sale.query.filter_by(apartado_id=apartado_300.id).one()
        assert sale.sale_type == 'apartado_deposit'
        assert Decimal(str(sale.total)) == Decimal('100.00')
        assert len(apartado_300.payments) == 1

    def test_stock_reserved(self, apartado_300, chamarra):
        assert db.session.get(Product, chamarra.id).stock == 9


class TestApartadoPayments(TestApartadoSetup):
    """Installments."""

    def test_full_payment_completes(self, apartado_300, seller):
        ApartadoService.add_payment(apartado_300, Decimal('200'), 'cash', seller, now=NOW)

        assert apartado_300.status == 'completed'
        assert Decimal(str(apartado_300.remaining_balance)) == Decimal('0.00')
        assert Decimal(str(apartado_300.deposit_paid)) == Decimal('300.00')
        assert apartado_300.completed_at == NOW

        last_sale = Sale.query.filter_by(apartado_id=apartado_300.id)\
            .order_by(Sale.id.desc()).first()
        assert last_sale.sale_type == 'apartado_complete'

    def test_partial_payment(self, apartado_300, seller):
        ApartadoService.add_payment(apartado_300, Decimal('50'), 'card', seller, now=NOW)

        assert apartado_300.status == 'active'
        assert Decimal(str(apartado_300.remaining_balance)) == Decimal('150.00')
        sale = Sale.query.filter_by(apartado_id=apartado_300.id, sale_type='apartado_payment').one()
        assert Decimal(str(sale.card_commission)) == Decimal('2.00')

    def test_overpayment_rejected(self, apartado_300, seller):
        with pytest.raises(ValidationError):
            ApartadoService.add_payment(apartado_300, Decimal('250'), 'cash', seller, now=NOW)
        assert Decimal(str(apartado_300.remaining_balance)) == Decimal('200.00')

    @pytest.mark.parametrize('amount', [Decimal('0'), Decimal('-10')])
    def test_non_positive_payment_rejected(self, apartado_300, seller, amount):
        with pytest.raises(ValidationError):
            ApartadoService.add_payment(apartado_300, amount, 'cash', seller, now=NOW)

    def test_balance_invariant_holds(self, apartado_300, seller):
        for amount in (Decimal('20'), Decimal('35.50'), Decimal('44.50')):
            ApartadoService.add_payment(apartado_300, amount, 'cash', seller, now=NOW)
            total = Decimal(str(apartado_300.total))
            paid = Decimal(str(apartado_300.deposit_paid))
            assert Decimal(str(apartado_300.remaining_balance)) == total - paid

        assert sum(Decimal(str(p.amount)) for p in apartado_300.payments) == Decimal('200.00')

    def test_payment_on_terminal_apartado_rejected(self, apartado_300, seller):
        ApartadoService.cancel(apartado_300, 'Cliente desistio', seller, now=NOW)
        with pytest.raises(InvalidTransition):
            ApartadoService.add_payment(apartado_300, Decimal('10'), 'cash', seller, now=NOW)


class TestApartadoTransitions(TestApartadoSetup):
    """Expiry, cancellation and delivery."""

    def test_expires_after_due_date(self, apartado_300, centro):
        later = NOW + timedelta(days=15, minutes=1)
        expired = ApartadoService.check_expired(centro.id, later)

        assert expired == [apartado_300.id]
        assert apartado_300.status == 'expired'
        assert apartado_300.expired_at == later
        assert ApartadoService.check_expired(centro.id, later) == []

    def test_not_expired_before_due_date(self, apartado_300, centro):
        assert ApartadoService.check_expired(centro.id, NOW + timedelta(days=14)) == []
        assert apartado_300.status == 'active'

    def test_completed_apartado_never_expires(self, apartado_300, centro, seller):
        ApartadoService.add_payment(apartado_300, Decimal('200'), 'cash', seller, now=NOW)
        assert ApartadoService.check_expired(centro.id, NOW + timedelta(days=30)) == []
        assert apartado_300.status == 'completed'

    def test_cancel(self, apartado_300, seller):
        ApartadoService.cancel(apartado_300, 'Cambio de opinion', seller, now=NOW)
        assert apartado_300.status == 'cancelled'
        assert apartado_300.cancel_reason == 'Cambio de opinion'
        assert Decimal(str(apartado_300.deposit_paid)) == Decimal('100.00')

    def test_cancel_terminal_rejected(self, apartado_300, seller):
        ApartadoService.cancel(apartado_300, '', seller, now=NOW)
        with pytest.raises(InvalidTransition):
            ApartadoService.cancel(apartado_300, '', seller, now=NOW)

    def test_complete_requires_zero_balance(self, apartado_300, seller):
        with pytest.raises(InvalidTransition):
            ApartadoService.complete(apartado_300, seller, now=NOW)

    def test_complete_marks_delivery(self, apartado_300, seller):
        ApartadoService.add_payment(apartado_300, Decimal('200'), 'cash', seller, now=NOW)
        delivered_at = NOW + timedelta(hours=2)
        ApartadoService.complete(apartado_300, seller, now=delivered_at)

        assert apartado_300.delivered_at == delivered_at
        with pytest.raises(InvalidTransition):
            ApartadoService.complete(apartado_300, seller, now=delivered_at)

    def test_store_stats(self, apartado_300, centro):
        stats = ApartadoService.store_stats(centro.id)
        assert stats['total'] == 1
        assert stats['counts']['active'] == 1
        assert stats['pending_balance'] == 200.0
        assert stats['collected'] == 100.0
