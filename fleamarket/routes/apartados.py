"""
Apartado Routes
Layaway management for the working store. Every listing runs the expiry
check first, so overdue apartados are reported as expired.
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.errors import FleaMarketError, NotFoundError
from fleamarket.models import db
from fleamarket.services import datastore
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.services.checkout_service import CheckoutService
from fleamarket.utils.permissions import store_staff_required
from fleamarket.utils.store_context import store_required

bp = Blueprint('apartados', __name__)

STATUS_FILTERS = ('active', 'completed', 'cancelled', 'expired', 'all')


def _store_apartado(store, apartado_id):
    apartado = datastore.get_by_id('apartados', apartado_id)
    if apartado.store_id != store.id:
        raise NotFoundError(f'apartados {apartado_id} not found')
    return apartado


def _run_action(action, error_label):
    """Run a mutating service call with the usual rollback handling"""
    try:
        apartado = action()
        return jsonify({'success': True, 'apartado': apartado.to_dict()})
    except FleaMarketError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error {error_label}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/', methods=['GET'])
@store_staff_required
@store_required
def list_apartados(store):
    """?status=active|completed|cancelled|expired|all (default active)"""
    status = request.args.get('status', 'active')
    if status not in STATUS_FILTERS:
        return jsonify({'success': False, 'error': f'status must be one of {", ".join(STATUS_FILTERS)}'}), 400

    ApartadoService.check_expired(store.id)
    apartados = datastore.get_apartados_by_store(store.id, status)
    return jsonify({
        'apartados': [a.to_dict() for a in apartados],
        'stats': ApartadoService.store_stats(store.id),
    })


@bp.route('/', methods=['POST'])
@store_staff_required
@store_required
def create_apartado(store):
    """
    Create an apartado from a cart.

    Body: client_id (client number), items [{product_id, quantity}],
    deposit_amount, payment_method, notes
    """
    data = request.get_json(silent=True) or {}
    try:
        client = CheckoutService.resolve_client(data.get('client_id'))
        apartado = CheckoutService.create_apartado(
            store,
            current_user,
            data.get('items') or [],
            client,
            data.get('deposit_amount'),
            payment_method=data.get('payment_method', 'cash'),
            notes=data.get('notes', ''),
        )
        return jsonify({'success': True, 'apartado': apartado.to_dict()}), 201
    except FleaMarketError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating apartado: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/stats')
@store_staff_required
@store_required
def apartado_stats(store):
    ApartadoService.check_expired(store.id)
    return jsonify(ApartadoService.store_stats(store.id))


@bp.route('/<int:apartado_id>')
@store_staff_required
@store_required
def apartado_detail(store, apartado_id):
    ApartadoService.check_expired(store.id)
    return jsonify({'apartado': _store_apartado(store, apartado_id).to_dict()})


@bp.route('/<int:apartado_id>/payments', methods=['POST'])
@store_staff_required
@store_required
def add_payment(store, apartado_id):
    """Body: amount, payment_method"""
    ApartadoService.check_expired(store.id)
    apartado = _store_apartado(store, apartado_id)
    data = request.get_json(silent=True) or {}
    return _run_action(
        lambda: ApartadoService.add_payment(
            apartado, data.get('amount'), data.get('payment_method', 'cash'), current_user
        ),
        f"adding payment to apartado {apartado_id}"
    )


@bp.route('/<int:apartado_id>/cancel', methods=['POST'])
@store_staff_required
@store_required
def cancel_apartado(store, apartado_id):
    """Body: reason"""
    ApartadoService.check_expired(store.id)
    apartado = _store_apartado(store, apartado_id)
    data = request.get_json(silent=True) or {}
    return _run_action(
        lambda: ApartadoService.cancel(apartado, data.get('reason', ''), current_user),
        f"cancelling apartado {apartado_id}"
    )


@bp.route('/<int:apartado_id>/complete', methods=['POST'])
@store_staff_required
@store_required
def complete_apartado(store, apartado_id):
    """Deliver a fully paid apartado"""
    apartado = _store_apartado(store, apartado_id)
    return _run_action(
        lambda: ApartadoService.complete(apartado, current_user),
        f"completing apartado {apartado_id}"
    )
