"""
Checkout Routes
Store home, cart pricing, sale submission and apartado creation
"""

from datetime import datetime
from flask import Blueprint, request, jsonify, session, current_app
from flask_login import current_user
from fleamarket.errors import FleaMarketError
from fleamarket.models import db
from fleamarket.services import datastore
from fleamarket.services.cash_close_service import CashCloseService, DISMISSED_ALERTS_KEY
from fleamarket.services.checkout_service import CheckoutService
from fleamarket.services.report_service import ReportService
from fleamarket.utils.formatting import get_day_type
from fleamarket.utils.permissions import store_staff_required
from fleamarket.utils.store_context import store_required
from fleamarket.utils.ticket import generate_ticket

bp = Blueprint('checkout', __name__)


def _serialize_quote(priced):
    """Pricing result as JSON; card commission stays out of the seller's view"""
    return {
        'items': [
            {
                'product_id': line['product_id'],
                'name': line['name'],
                'category': line['category'],
                'price': float(line['price']),
                'quantity': line['quantity'],
                'promo_discount': float(line['promo_discount']),
                'promotion_id': line['promotion_id'],
                'final_price': float(line['final_price']),
            }
            for line in priced['items']
        ],
        'subtotal': float(priced['subtotal']),
        'promo_discount': float(priced['promo_discount']),
        'vip_discount': float(priced['vip_discount']),
        'is_vip': priced['is_vip'],
        'total': float(priced['total']),
    }


@bp.route('/')
@store_staff_required
@store_required
def home(store):
    """Store landing: today's figures and cash alerts"""
    now = datetime.now()
    return jsonify({
        'store': store.to_dict(),
        'today': ReportService.seller_summary(store.id, now),
        'day_type': get_day_type(now),
        'alerts': CashCloseService.get_alerts(store.id, now, session.get(DISMISSED_ALERTS_KEY, [])),
    })


@bp.route('/checkout/products')
@store_staff_required
def checkout_products():
    """Catalog for the cart, optionally filtered by search or category"""
    term = request.args.get('q', '').strip()
    category = request.args.get('category')
    if term:
        products = datastore.search_products(term)
    elif category:
        products = datastore.get_products_by_category(category)
    else:
        products = datastore.get_products_ordered_by_name()
    return jsonify({
        'products': [p.to_dict() for p in products],
        'categories': datastore.get_categories(),
    })


@bp.route('/checkout/quote', methods=['POST'])
@store_staff_required
@store_required
def quote(store):
    """Price a cart without recording anything"""
    data = request.get_json(silent=True) or {}
    client = CheckoutService.resolve_client(data.get('client_id'))
    priced = CheckoutService.quote(store, data.get('items') or [], client,
                                   data.get('payment_method', 'cash'))
    result = _serialize_quote(priced)
    if client is not None:
        result['client'] = {'client_number': client.client_number, 'name': client.name}
    return jsonify(result)


@bp.route('/checkout', methods=['POST'])
@store_staff_required
@store_required
def submit_sale(store):
    """
    Record a sale.

    Body: items [{product_id, quantity}], client_id (client number or
    'mostrador'), payment_method, cash_received
    """
    data = request.get_json(silent=True) or {}
    try:
        client = CheckoutService.resolve_client(data.get('client_id'))
        sale = CheckoutService.submit_sale(
            store,
            current_user,
            data.get('items') or [],
            client=client,
            payment_method=data.get('payment_method', 'cash'),
            cash_received=data.get('cash_received'),
        )
        return jsonify({
            'success': True,
            'sale': sale.to_dict(),
            'ticket': generate_ticket(sale, store, current_app.config.get('TICKET_WIDTH', 48)),
        }), 201
    except FleaMarketError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error completing sale: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/checkout/apartado', methods=['POST'])
@store_staff_required
@store_required
def checkout_apartado(store):
    """Reserve the cart as an apartado; body adds deposit_amount and notes"""
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
