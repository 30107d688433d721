"""
Tests for the public client portal.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from fleamarket.models import db, Store, Client, Apartado
from fleamarket.services.apartado_service import ApartadoService


class TestClientPortal:

    def test_vip_client(self, client, init_database):
        response = client.get('/client/20002')
        assert response.status_code == 200
        data = response.get_json()
        assert data['client']['name'] == 'Ana Torres'
        assert data['is_vip'] is True
        assert data['monthly_purchases'] == 2500.0
        assert data['amount_to_vip'] == 0.0
        assert data['vip_discount_percent'] == 15.0

    def test_regular_client_progress(self, client, init_database):
        data = client.get('/client/10001').get_json()
        assert data['is_vip'] is False
        assert data['vip_threshold'] == 2000.0
        assert data['amount_to_vip'] == 2000.0
        assert data['apartados'] == []

    def test_unknown_client(self, client, init_database):
        assert client.get('/client/99999').status_code == 404

    def test_no_login_required(self, client, init_database):
        response = client.get('/client/10001')
        assert response.status_code == 200

    def test_only_active_apartados_listed(self, client, init_database):
        centro = Store.query.filter_by(name='Tienda Centro').first()
        record = Client.query.filter_by(client_number='10001').first()
        items = [{'product_id': None, 'name': 'Bolsa', 'category': 'Accesorios',
                  'price': Decimal('400'), 'quantity': 1}]
        open_one = ApartadoService.create(centro, record, items, Decimal('400'), Decimal('100'))
        closed = ApartadoService.create(centro, record, items, Decimal('400'), Decimal('100'))
        ApartadoService.cancel(closed, 'Ya no lo quiere')

        data = client.get('/client/10001').get_json()
        assert [a['number'] for a in data['apartados']] == [open_one.number]
        assert data['apartados'][0]['remaining_balance'] == 300.0
        assert data['apartados'][0]['store_name'] == 'Tienda Centro'

    def test_overdue_apartado_expires_on_view(self, client, init_database):
        centro = Store.query.filter_by(name='Tienda Centro').first()
        record = Client.query.filter_by(client_number='10001').first()
        items = [{'product_id': None, 'name': 'Bolsa', 'category': 'Accesorios',
                  'price': Decimal('400'), 'quantity': 1}]
        overdue = ApartadoService.create(centro, record, items, Decimal('400'), Decimal('100'),
                                         now=datetime.now() - timedelta(days=20))

        data = client.get('/client/10001').get_json()
        assert data['apartados'] == []
        db.session.expire_all()
        assert db.session.get(Apartado, overdue.id).status == 'expired'
