"""
Client Routes
Client registry with VIP status for the store staff
"""

import re
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.errors import ValidationError, NotFoundError, InvalidTransition
from fleamarket.models import db, Sale
from fleamarket.services import datastore
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.utils.helpers import generate_client_number
from fleamarket.utils.permissions import store_staff_required
from fleamarket.utils.store_context import get_current_store

bp = Blueprint('clients', __name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
CLIENT_FIELDS = ('name', 'phone', 'email', 'notes')


def _vip_threshold():
    return current_app.config.get('VIP_THRESHOLD', 2000)


def _lookup(client_ref):
    """Client by database id or by 5-digit client number"""
    client = datastore.get_client_by_number(client_ref)
    if client is None and client_ref.isdigit() and len(client_ref) < 5:
        client = datastore.get_by_id('clients', int(client_ref))
    if client is None:
        raise NotFoundError(f'Client {client_ref} not found')
    return client


def _client_fields(data, partial=False):
    fields = {}
    for key in CLIENT_FIELDS:
        if key in data:
            fields[key] = (data.get(key) or '').strip()

    if not partial or 'name' in fields:
        if not fields.get('name'):
            raise ValidationError('Client name is required')
    if fields.get('email') and not EMAIL_RE.match(fields['email']):
        raise ValidationError('Invalid email address')
    return fields


@bp.route('/', methods=['GET'])
@store_staff_required
def list_clients():
    """?q= searches name, phone and client number"""
    term = request.args.get('q', '').strip()
    if term:
        clients = datastore.search_clients(term)
    else:
        clients = datastore.get_all('clients', order_by='name')
    threshold = _vip_threshold()
    return jsonify({'clients': [c.to_dict(threshold) for c in clients]})


@bp.route('/', methods=['POST'])
@store_staff_required
def create_client():
    """Register a client; the 5-digit client number is generated"""
    fields = _client_fields(request.get_json(silent=True) or {})
    store = get_current_store()
    fields.update({
        'client_number': generate_client_number(),
        'registered_by': current_user.id,
        'registered_by_name': current_user.name,
        'registered_store_id': store.id if store else None,
    })
    try:
        client = datastore.create('clients', fields)
        current_app.logger.info(f"Client {client.client_number} registered by {current_user.email}")
        return jsonify({'success': True, 'client': client.to_dict(_vip_threshold())}), 201
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error registering client: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<client_ref>', methods=['GET'])
@store_staff_required
def client_detail(client_ref):
    client = _lookup(client_ref)
    return jsonify({'client': client.to_dict(_vip_threshold())})


@bp.route('/<client_ref>', methods=['PUT'])
@store_staff_required
def update_client(client_ref):
    client = _lookup(client_ref)
    fields = _client_fields(request.get_json(silent=True) or {}, partial=True)
    try:
        client = datastore.update('clients', client.id, fields)
        return jsonify({'success': True, 'client': client.to_dict(_vip_threshold())})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating client {client_ref}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<client_ref>', methods=['DELETE'])
@store_staff_required
def delete_client(client_ref):
    """Clients with apartados cannot be deleted; past sales keep the name snapshot"""
    client = _lookup(client_ref)
    if client.apartados.count():
        raise InvalidTransition('Client has apartados and cannot be deleted')
    try:
        Sale.query.filter_by(client_id=client.id).update({'client_id': None})
        datastore.remove('clients', client.id)
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting client {client_ref}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<client_ref>/apartados')
@store_staff_required
def client_apartados(client_ref):
    client = _lookup(client_ref)
    ApartadoService.check_expired_for_client(client.id)
    status = request.args.get('status')
    apartados = datastore.get_apartados_by_client(client.id, status)
    return jsonify({
        'client': client.to_dict(_vip_threshold()),
        'apartados': [a.to_dict() for a in apartados],
    })
