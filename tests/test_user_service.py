"""
Tests for user administration.

Tests cover:
- createUser structured error codes
- Role normalization (cashier -> seller)
- Admin user routes
"""

import pytest
from flask_login import AnonymousUserMixin

from fleamarket.errors import CallableError, ValidationError
from fleamarket.models import User, Store
from fleamarket.services.user_service import UserService, normalize_role

from conftest import JSON_HEADERS


def new_user_data(**overrides):
    data = {
        'email': 'nuevo@test.com',
        'password': 'secret1',
        'name': 'Nuevo Vendedor',
        'role': 'cashier',
        'type': 'weekend',
    }
    data.update(overrides)
    return data


class TestCreateUserErrors:
    """Each failure maps to one error code."""

    @pytest.fixture
    def admin(self, init_database):
        return User.query.filter_by(email='admin@test.com').first()

    def test_unauthenticated(self, fresh_app):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(AnonymousUserMixin(), new_user_data())
        assert exc.value.code == 'unauthenticated'
        assert exc.value.status_code == 401

    def test_no_caller(self, fresh_app):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(None, new_user_data())
        assert exc.value.code == 'unauthenticated'

    def test_seller_not_allowed(self, init_database):
        seller = User.query.filter_by(email='seller@test.com').first()
        with pytest.raises(CallableError) as exc:
            UserService.create_user(seller, new_user_data())
        assert exc.value.code == 'permission-denied'
        assert exc.value.status_code == 403

    @pytest.mark.parametrize('missing', ['email', 'password', 'name'])
    def test_required_fields(self, admin, missing):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(admin, new_user_data(**{missing: ''}))
        assert exc.value.code == 'invalid-argument'

    def test_short_password(self, admin):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(admin, new_user_data(password='123'))
        assert exc.value.code == 'invalid-argument'

    def test_unknown_role(self, admin):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(admin, new_user_data(role='manager'))
        assert exc.value.code == 'invalid-argument'

    @pytest.mark.parametrize('store_id', ['centro', 999])
    def test_bad_store_id(self, admin, store_id):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(admin, new_user_data(store_id=store_id))
        assert exc.value.code == 'invalid-argument'
        assert User.query.filter_by(email='nuevo@test.com').first() is None

    def test_duplicate_email(self, admin):
        with pytest.raises(CallableError) as exc:
            UserService.create_user(admin, new_user_data(email='SELLER@test.com'))
        assert exc.value.code == 'already-exists'
        assert exc.value.message == 'El correo electrónico ya está registrado.'
        assert exc.value.to_dict()['code'] == 'already-exists'


class TestCreateUser:

    @pytest.fixture
    def admin(self, init_database):
        return User.query.filter_by(email='admin@test.com').first()

    def test_cashier_stored_as_seller(self, admin):
        centro = Store.query.filter_by(name='Tienda Centro').first()
        result = UserService.create_user(admin, new_user_data(store_id=centro.id))

        assert result['success'] is True
        user = User.query.filter_by(email='nuevo@test.com').one()
        assert result['uid'] == user.id
        assert user.role == 'seller'
        assert user.schedule_type == 'weekend'
        assert user.store_id == centro.id
        assert user.created_by == admin.id
        assert user.check_password('secret1')

    def test_email_lowercased(self, admin):
        UserService.create_user(admin, new_user_data(email='Mixed@Test.com'))
        assert User.query.filter_by(email='mixed@test.com').count() == 1

    @pytest.mark.parametrize('role, expected', [
        ('cashier', 'seller'), ('CASHIER', 'seller'), (None, 'seller'), ('admin', 'admin')
    ])
    def test_normalize_role(self, role, expected):
        assert normalize_role(role) == expected


class TestUserMaintenance:

    def test_update_rejects_bad_schedule(self, init_database):
        seller = User.query.filter_by(email='seller@test.com').first()
        with pytest.raises(ValidationError):
            UserService.update_user(seller, {'type': 'night'})

    def test_update_rejects_bad_store_id(self, init_database):
        seller = User.query.filter_by(email='seller@test.com').first()
        store_id = seller.store_id
        with pytest.raises(ValidationError):
            UserService.update_user(seller, {'store_id': 'norte'})
        assert seller.store_id == store_id

    def test_update_store_from_string_id(self, init_database):
        seller = User.query.filter_by(email='seller@test.com').first()
        norte = Store.query.filter_by(name='Tienda Norte').first()
        UserService.update_user(seller, {'store_id': str(norte.id)})
        assert seller.store_id == norte.id

    def test_toggle(self, init_database):
        admin = User.query.filter_by(email='admin@test.com').first()
        seller = User.query.filter_by(email='seller@test.com').first()
        UserService.toggle_status(seller, admin)
        assert seller.is_active is False

    def test_cannot_disable_self(self, init_database):
        admin = User.query.filter_by(email='admin@test.com').first()
        with pytest.raises(ValidationError):
            UserService.toggle_status(admin, admin)


class TestUserRoutes:

    def test_admin_creates_user(self, auth_admin):
        response = auth_admin.post('/admin/users', json=new_user_data())
        assert response.status_code == 201
        assert response.get_json()['message'] == 'User created successfully'

    def test_seller_gets_permission_denied(self, auth_seller):
        response = auth_seller.post('/admin/users', json=new_user_data())
        assert response.status_code == 403
        assert response.get_json()['code'] == 'permission-denied'

    def test_anonymous_gets_unauthenticated(self, client, init_database):
        response = client.post('/admin/users', json=new_user_data())
        assert response.status_code == 401
        assert response.get_json()['code'] == 'unauthenticated'

    def test_bad_store_id_over_http(self, auth_admin):
        response = auth_admin.post('/admin/users', json=new_user_data(store_id='centro'))
        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid-argument'

    def test_duplicate_over_http(self, auth_admin):
        response = auth_admin.post('/admin/users', json=new_user_data(email='seller@test.com'))
        assert response.status_code == 409

    def test_list_by_store(self, auth_admin):
        norte = Store.query.filter_by(name='Tienda Norte').first()
        response = auth_admin.get(f'/admin/users?store_id={norte.id}', headers=JSON_HEADERS)
        assert [u['email'] for u in response.get_json()['users']] == ['norte@test.com']

    def test_update_role_over_http(self, auth_admin):
        seller = User.query.filter_by(email='seller@test.com').first()
        response = auth_admin.put(f'/admin/users/{seller.id}', json={'role': 'cashier', 'name': 'Vendedora'})
        assert response.status_code == 200
        assert response.get_json()['user']['role'] == 'seller'
        assert response.get_json()['user']['name'] == 'Vendedora'

    def test_toggle_self_rejected(self, auth_admin):
        admin = User.query.filter_by(email='admin@test.com').first()
        response = auth_admin.post(f'/admin/users/{admin.id}/toggle', json={})
        assert response.status_code == 400
