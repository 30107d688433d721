"""
Tests for Apartado Routes.

Tests cover:
- Creation from a cart
- Listing with the on-read expiry check
- Payments, cancellation and delivery over HTTP
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from fleamarket.models import Product, Client, Store, User, Apartado
from fleamarket.services.apartado_service import ApartadoService

from conftest import JSON_HEADERS


def cart(sku, quantity=1):
    product = Product.query.filter_by(sku=sku).first()
    return [{'product_id': product.id, 'quantity': quantity}]


class TestApartadoRoutesSetup:

    @pytest.fixture
    def apartado(self, auth_seller, fresh_app):
        """500 apartado with a 50 deposit created over HTTP."""
        response = auth_seller.post('/store/apartados/', json={
            'client_id': '10001',
            'items': cart('ROP-001'),
            'deposit_amount': 50,
            'payment_method': 'cash',
            'notes': 'Recoge el viernes',
        })
        assert response.status_code == 201
        return response.get_json()['apartado']


class TestCreateApartadoRoute(TestApartadoRoutesSetup):

    def test_create(self, apartado):
        assert apartado['number'] == 'APT-0001'
        assert apartado['status'] == 'active'
        assert apartado['total'] == 500.0
        assert apartado['deposit_paid'] == 50.0
        assert apartado['remaining_balance'] == 450.0
        assert apartado['client_id'] == '10001'
        assert apartado['days_remaining'] == 15
        assert len(apartado['payments']) == 1

    def test_deposit_below_minimum(self, auth_seller, fresh_app):
        response = auth_seller.post('/store/apartados/', json={
            'client_id': '10001',
            'items': cart('ROP-001'),
            'deposit_amount': 40,
        })
        assert response.status_code == 400
        assert Apartado.query.count() == 0

    def test_non_numeric_deposit(self, auth_seller, fresh_app):
        response = auth_seller.post('/store/apartados/', json={
            'client_id': '10001',
            'items': cart('ROP-001'),
            'deposit_amount': 'cincuenta',
        })
        assert response.status_code == 400
        assert Apartado.query.count() == 0

    def test_guest_cannot_create(self, auth_seller, fresh_app):
        response = auth_seller.post('/store/apartados/', json={
            'client_id': 'mostrador',
            'items': cart('ROP-001'),
            'deposit_amount': 100,
        })
        assert response.status_code == 400

    def test_vip_discount_applies(self, auth_seller, fresh_app):
        response = auth_seller.post('/store/checkout/apartado', json={
            'client_id': '20002',
            'items': cart('ROP-001', 2),
            'deposit_amount': 85,
        })
        assert response.status_code == 201
        assert response.get_json()['apartado']['total'] == 850.0


class TestListApartados(TestApartadoRoutesSetup):

    def test_list_active(self, auth_seller, apartado):
        response = auth_seller.get('/store/apartados/', headers=JSON_HEADERS)
        data = response.get_json()
        assert [a['number'] for a in data['apartados']] == ['APT-0001']
        assert data['stats']['counts']['active'] == 1

    def test_invalid_status_filter(self, auth_seller, apartado):
        response = auth_seller.get('/store/apartados/?status=lost', headers=JSON_HEADERS)
        assert response.status_code == 400

    def test_overdue_apartado_listed_as_expired(self, auth_seller, fresh_app):
        store = Store.query.filter_by(name='Tienda Centro').first()
        client = Client.query.filter_by(client_number='10001').first()
        seller = User.query.filter_by(email='seller@test.com').first()
        items = [{'product_id': None, 'name': 'Bolsa', 'category': 'Accesorios',
                  'price': Decimal('400'), 'quantity': 1}]
        ApartadoService.create(store, client, items, Decimal('400'), Decimal('40'),
                               created_by=seller, now=datetime.now() - timedelta(days=20))

        active = auth_seller.get('/store/apartados/', headers=JSON_HEADERS).get_json()
        assert active['apartados'] == []

        expired = auth_seller.get('/store/apartados/?status=expired', headers=JSON_HEADERS).get_json()
        assert len(expired['apartados']) == 1
        assert expired['apartados'][0]['days_remaining'] == 0

    def test_other_store_apartado_hidden(self, auth_seller_norte, fresh_app):
        centro = Store.query.filter_by(name='Tienda Centro').first()
        client = Client.query.filter_by(client_number='10001').first()
        items = [{'product_id': None, 'name': 'Bolsa', 'category': 'Accesorios',
                  'price': Decimal('400'), 'quantity': 1}]
        apartado = ApartadoService.create(centro, client, items, Decimal('400'), Decimal('40'))

        response = auth_seller_norte.get(f'/store/apartados/{apartado.id}', headers=JSON_HEADERS)
        assert response.status_code == 404


class TestApartadoActions(TestApartadoRoutesSetup):

    def test_payment(self, auth_seller, apartado):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/payments",
                                    json={'amount': 150, 'payment_method': 'transfer'})
        assert response.status_code == 200
        data = response.get_json()['apartado']
        assert data['remaining_balance'] == 300.0
        assert data['payments'][-1]['payment_method'] == 'transfer'

    def test_payment_completes(self, auth_seller, apartado):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/payments",
                                    json={'amount': 450})
        assert response.get_json()['apartado']['status'] == 'completed'

    def test_overpayment(self, auth_seller, apartado):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/payments",
                                    json={'amount': 451})
        assert response.status_code == 400

    @pytest.mark.parametrize('amount', ['abc', '1,200', 'NaN', [150]])
    def test_non_numeric_payment(self, auth_seller, apartado, amount):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/payments",
                                    json={'amount': amount})
        assert response.status_code == 400
        assert 'not a valid amount' in response.get_json()['error']
        detail = auth_seller.get(f"/store/apartados/{apartado['id']}", headers=JSON_HEADERS).get_json()
        assert detail['apartado']['remaining_balance'] == 450.0

    def test_cancel_then_pay(self, auth_seller, apartado):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/cancel",
                                    json={'reason': 'Ya no lo quiere'})
        assert response.get_json()['apartado']['status'] == 'cancelled'

        response = auth_seller.post(f"/store/apartados/{apartado['id']}/payments",
                                    json={'amount': 10})
        assert response.status_code == 409

    def test_complete_with_balance(self, auth_seller, apartado):
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/complete", json={})
        assert response.status_code == 409

    def test_deliver_paid_apartado(self, auth_seller, apartado):
        auth_seller.post(f"/store/apartados/{apartado['id']}/payments", json={'amount': 450})
        response = auth_seller.post(f"/store/apartados/{apartado['id']}/complete", json={})
        assert response.status_code == 200
        assert response.get_json()['apartado']['delivered_at'] is not None

    def test_client_apartados(self, auth_seller, apartado):
        response = auth_seller.get('/store/clients/10001/apartados', headers=JSON_HEADERS)
        assert [a['number'] for a in response.get_json()['apartados']] == ['APT-0001']
