"""
Store Configuration Routes
Accepted payment methods, transfer details and ticket footer of the working store
"""

import re
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.models import db
from fleamarket.services import datastore
from fleamarket.utils.permissions import store_staff_required
from fleamarket.utils.store_context import store_required

bp = Blueprint('store_config', __name__)

CLABE_RE = re.compile(r'^\d{18}$')
PAYMENT_FLAGS = {
    'cash': 'accepts_cash',
    'card': 'accepts_card',
    'transfer': 'accepts_transfer',
}
TEXT_FIELDS = ('address', 'phone', 'bank_name', 'account_holder', 'clabe', 'ticket_footer')


@bp.route('/', methods=['GET'])
@store_staff_required
@store_required
def get_config(store):
    return jsonify({'store': store.to_dict()})


@bp.route('/', methods=['PUT'])
@store_staff_required
@store_required
def update_config(store):
    """
    Update store settings.

    Body: payment_methods {cash, card, transfer}, address, phone,
    bank_name, account_holder, clabe (18 digits), ticket_footer
    """
    data = request.get_json(silent=True) or {}
    fields = {}

    methods = data.get('payment_methods') or {}
    for method, column in PAYMENT_FLAGS.items():
        if method in methods:
            fields[column] = bool(methods[method])

    for key in TEXT_FIELDS:
        if key in data:
            fields[key] = (data.get(key) or '').strip()

    if fields.get('clabe') and not CLABE_RE.match(fields['clabe']):
        return jsonify({'success': False, 'error': 'CLABE must be 18 digits'}), 400

    accepts = {m: fields.get(c, getattr(store, c)) for m, c in PAYMENT_FLAGS.items()}
    if not any(accepts.values()):
        return jsonify({'success': False, 'error': 'At least one payment method must be enabled'}), 400

    try:
        store = datastore.update('stores', store.id, fields)
        current_app.logger.info(f"Store {store.name} settings updated by {current_user.email}")
        return jsonify({'success': True, 'store': store.to_dict()})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating store {store.id} settings: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
