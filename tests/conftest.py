"""
Shared pytest fixtures and configuration for all tests.

Provides common fixtures for Flask application testing, database sessions,
authentication, and test data initialization.
"""

import pytest
import sys
import os
from decimal import Decimal
from datetime import datetime

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleamarket import create_app
from fleamarket.models import db


JSON_HEADERS = {'Accept': 'application/json'}


@pytest.fixture(scope='session')
def app_factory():
    """Factory fixture for creating test app instances."""
    def _create_app(config='testing'):
        app = create_app(config)
        app.config['WTF_CSRF_ENABLED'] = False
        app.config['SERVER_NAME'] = 'localhost'
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
        return app
    return _create_app


@pytest.fixture(scope='session')
def app(app_factory):
    """Create application for testing session."""
    return app_factory()


@pytest.fixture(scope='function')
def fresh_app(app_factory):
    """Create a fresh application for each test with clean database."""
    app = app_factory()

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(fresh_app):
    """Create a test client for each test."""
    return fresh_app.test_client()


@pytest.fixture(scope='function')
def db_session(fresh_app):
    """Provide a database session for testing."""
    with fresh_app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture(scope='function')
def init_database(fresh_app):
    """
    Initialize database with test data.

    Creates:
    - Stores (Tienda Centro accepts everything, Tienda Norte no cards)
    - Users (admin, seller per store, inactive)
    - Products in Ropa and Accesorios
    - Clients (regular 10001, VIP 20002 with 2500 bought this month)
    """
    from fleamarket.models import User, Store, Product, Client, ClientPurchase

    with fresh_app.app_context():
        centro = Store(
            name='Tienda Centro',
            address='Av. Juarez 100',
            phone='555-0100',
            accepts_cash=True,
            accepts_card=True,
            accepts_transfer=True,
            ticket_footer='Gracias por su compra',
            is_active=True
        )
        norte = Store(
            name='Tienda Norte',
            address='Calle Norte 5',
            accepts_cash=True,
            accepts_card=False,
            accepts_transfer=True,
            is_active=True
        )
        db.session.add_all([centro, norte])
        db.session.flush()

        # Admin works across stores and has none assigned
        admin = User(
            email='admin@test.com',
            name='Admin User',
            role='admin',
            is_active=True
        )
        admin.set_password('admin123')

        seller = User(
            email='seller@test.com',
            name='Seller Centro',
            role='seller',
            schedule_type='weekday',
            store_id=centro.id,
            is_active=True
        )
        seller.set_password('seller123')

        seller_norte = User(
            email='norte@test.com',
            name='Seller Norte',
            role='seller',
            schedule_type='weekend',
            store_id=norte.id,
            is_active=True
        )
        seller_norte.set_password('norte123')

        inactive_user = User(
            email='inactive@test.com',
            name='Inactive User',
            role='seller',
            store_id=centro.id,
            is_active=False
        )
        inactive_user.set_password('inactive123')
        db.session.add_all([admin, seller, seller_norte, inactive_user])

        products = [
            Product(name='Chamarra', category='Ropa', price=Decimal('500.00'),
                    cost=Decimal('250.00'), sku='ROP-001', stock=10),
            Product(name='Blusa', category='Ropa', price=Decimal('250.00'),
                    cost=Decimal('100.00'), sku='ROP-002', stock=20),
            Product(name='Bolsa', category='Accesorios', price=Decimal('400.00'),
                    cost=Decimal('150.00'), sku='ACC-001', stock=5),
            Product(name='Lentes', category='Accesorios', price=Decimal('100.00'),
                    cost=Decimal('30.00'), sku='ACC-002', stock=0),
        ]
        db.session.add_all(products)

        regular = Client(client_number='10001', name='Maria Lopez', phone='5551110000',
                         registered_store_id=centro.id)
        vip = Client(client_number='20002', name='Ana Torres', phone='5552220000',
                     registered_store_id=centro.id)
        db.session.add_all([regular, vip])
        db.session.flush()

        db.session.add(ClientPurchase(client_id=vip.id, store_id=centro.id,
                                      total=Decimal('2500.00'), created_at=datetime.now()))

        db.session.commit()
        yield

        # Cleanup is handled by fresh_app fixture


def login(client, email, password):
    """Post JSON credentials and return the response."""
    return client.post('/login', json={'email': email, 'password': password})


@pytest.fixture
def auth_admin(client, init_database):
    """
    Login as admin user and return authenticated client.
    Admin reaches /admin and any store with store_id.
    """
    login(client, 'admin@test.com', 'admin123')
    return client


@pytest.fixture
def auth_seller(client, init_database):
    """
    Login as the Tienda Centro seller and return authenticated client.
    Seller is limited to /store for the assigned store.
    """
    login(client, 'seller@test.com', 'seller123')
    return client


@pytest.fixture
def auth_seller_norte(client, init_database):
    """Login as the Tienda Norte seller (store without card payments)."""
    login(client, 'norte@test.com', 'norte123')
    return client


def logout_client(client):
    """Helper function to logout a client."""
    client.post('/logout', json={})


# Pytest configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "api: marks tests as API endpoint tests"
    )
    config.addinivalue_line(
        "markers", "auth: marks tests as authentication tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically add markers based on test class/function names."""
    for item in items:
        if 'routes' in item.nodeid.lower():
            item.add_marker(pytest.mark.api)

        if 'auth' in item.name.lower() or 'login' in item.name.lower():
            item.add_marker(pytest.mark.auth)
