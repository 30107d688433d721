"""
Tests for the scheduled expiry sweep.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from fleamarket.models import db, Store, Client, Apartado, ReturnToken, User
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.services.expiry_service import ExpiryService
from fleamarket.services.return_service import ReturnService


def open_apartado(store_name, created_at):
    store = Store.query.filter_by(name=store_name).first()
    client = Client.query.filter_by(client_number='10001').first()
    items = [{'product_id': None, 'name': 'Bolsa', 'category': 'Accesorios',
              'price': Decimal('400'), 'quantity': 1}]
    return ApartadoService.create(store, client, items, Decimal('400'), Decimal('40'), now=created_at)


class TestSweep:

    def test_expires_overdue_in_every_store(self, fresh_app, init_database):
        now = datetime.now()
        old_centro = open_apartado('Tienda Centro', now - timedelta(days=20))
        old_norte = open_apartado('Tienda Norte', now - timedelta(days=16))
        recent = open_apartado('Tienda Centro', now - timedelta(days=3))
        ids = (old_centro.id, old_norte.id, recent.id)

        results = ExpiryService(fresh_app).sweep(now)

        centro = Store.query.filter_by(name='Tienda Centro').first()
        norte = Store.query.filter_by(name='Tienda Norte').first()
        assert results == {centro.id: 1, norte.id: 1}

        db.session.expire_all()
        statuses = [db.session.get(Apartado, i).status for i in ids]
        assert statuses == ['expired', 'expired', 'active']

    def test_expires_stale_tokens(self, fresh_app, init_database):
        admin = User.query.filter_by(email='admin@test.com').first()
        token = ReturnService.generate_super_token(admin, now=datetime.now() - timedelta(minutes=30))

        ExpiryService(fresh_app).sweep()

        db.session.expire_all()
        assert db.session.get(ReturnToken, token.id).status == 'expired'

    def test_nothing_to_expire(self, fresh_app, init_database):
        assert ExpiryService(fresh_app).sweep() == {}


class TestScheduler:

    def test_disabled_by_default_in_tests(self, fresh_app):
        service = ExpiryService(fresh_app)
        service.start_scheduler()
        assert service.scheduler is None

    def test_start_and_stop(self, fresh_app):
        fresh_app.config['APARTADO_SWEEP_ENABLED'] = True
        fresh_app.config['APARTADO_SWEEP_INTERVAL_MINUTES'] = 15
        service = ExpiryService(fresh_app)
        service.start_scheduler()
        try:
            job = service.scheduler.get_job('apartado_expiry')
            assert job is not None
            assert job.trigger.interval == timedelta(minutes=15)
        finally:
            service.stop_scheduler()
        assert service.scheduler is None
