"""
Store Sales Routes
Sales list, tickets, token-authorised returns and cash closes (cortes de caja)
"""

from datetime import datetime
from flask import Blueprint, request, jsonify, session, current_app, Response
from flask_login import current_user
from fleamarket.errors import FleaMarketError, NotFoundError
from fleamarket.models import db
from fleamarket.services import datastore
from fleamarket.services.cash_close_service import (
    CashCloseService, CLOSE_LABELS, DISMISSED_ALERTS_KEY
)
from fleamarket.services.report_service import ReportService
from fleamarket.services.return_service import ReturnService
from fleamarket.utils.formatting import parse_date
from fleamarket.utils.permissions import store_staff_required
from fleamarket.utils.store_context import store_required
from fleamarket.utils.ticket import generate_ticket

bp = Blueprint('sales', __name__)


def _store_sale(store, sale_id):
    """Sale of the working store, or 404"""
    sale = datastore.get_by_id('sales', sale_id)
    if sale.store_id != store.id:
        raise NotFoundError(f'sales {sale_id} not found')
    return sale


@bp.route('/')
@store_staff_required
@store_required
def list_sales(store):
    """Sales of a day (default today) with the seller-facing summary"""
    try:
        day = parse_date(request.args.get('date')) or datetime.now().date()
    except ValueError:
        return jsonify({'success': False, 'error': 'date must be YYYY-MM-DD'}), 400

    sales = datastore.get_sales_for_day(store.id, day)
    return jsonify({
        'date': day.isoformat(),
        'sales': [s.to_dict() for s in reversed(sales)],
        'summary': ReportService.summarize(sales),
    })


@bp.route('/<int:sale_id>')
@store_staff_required
@store_required
def sale_detail(store, sale_id):
    return jsonify({'sale': _store_sale(store, sale_id).to_dict()})


@bp.route('/<int:sale_id>/ticket')
@store_staff_required
@store_required
def sale_ticket(store, sale_id):
    """Thermal ticket as plain text"""
    sale = _store_sale(store, sale_id)
    ticket = generate_ticket(sale, store, current_app.config.get('TICKET_WIDTH', 48))
    return Response(ticket, mimetype='text/plain; charset=utf-8')


@bp.route('/<int:sale_id>/return', methods=['POST'])
@store_staff_required
@store_required
def return_sale(store, sale_id):
    """Return a sale with an admin authorization code"""
    sale = _store_sale(store, sale_id)
    data = request.get_json(silent=True) or {}
    try:
        ReturnService.process_return(sale, data.get('code'), current_user)
        return jsonify({'success': True, 'sale': sale.to_dict()})
    except FleaMarketError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error processing return for sale {sale_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ============================================================
# CASH CLOSE
# ============================================================

@bp.route('/cash-close', methods=['GET'])
@store_staff_required
@store_required
def cash_close_status(store):
    """
    Register status for the close dialog.

    Sellers do not see the expected amount; admins do.
    """
    now = datetime.now()
    today = now.date()
    summary = CashCloseService.summary_since_last_close(store.id, now)
    closes = datastore.get_cash_closes_for_day(store.id, today)
    is_admin = current_user.is_admin

    data = {
        'date': today.isoformat(),
        'close_types': CLOSE_LABELS,
        'schedule': CashCloseService.schedule(),
        'completed_types': CashCloseService.completed_types(store.id, today),
        'alerts': CashCloseService.get_alerts(store.id, now, session.get(DISMISSED_ALERTS_KEY, [])),
        'since_last_close': {
            'sales_count': summary['sales_count'],
            'total_sales': float(summary['total_sales']),
            'payment_breakdown': {k: float(v) for k, v in summary['payment_breakdown'].items()},
        },
        'closes': [c.to_dict(include_expected=is_admin) for c in closes],
    }
    if is_admin:
        data['expected_cash'] = float(CashCloseService.compute_expected_cash(store.id, today))
        data['since_last_close']['card_commission'] = float(summary['card_commission'])
    return jsonify(data)


@bp.route('/cash-close', methods=['POST'])
@store_staff_required
@store_required
def record_cash_close(store):
    """Body: close_type, cash_amount, notes"""
    data = request.get_json(silent=True) or {}
    try:
        cash_close = CashCloseService.record_close(
            store,
            current_user,
            close_type=data.get('close_type', 'manual'),
            counted_amount=data.get('cash_amount'),
            notes=data.get('notes', ''),
        )
        return jsonify({
            'success': True,
            'cash_close': cash_close.to_dict(include_expected=current_user.is_admin),
        }), 201
    except FleaMarketError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error saving cash close: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/cash-close/history')
@store_staff_required
@store_required
def cash_close_history(store):
    days = min(request.args.get('days', 7, type=int), 90)
    history = CashCloseService.history(store.id, days)
    if not current_user.is_admin:
        for day in history:
            day.pop('total_difference', None)
            for close in day['closes']:
                for key in ('expected_amount', 'difference', 'card_commission'):
                    close.pop(key, None)
    return jsonify({'history': history})


@bp.route('/cash-close/alerts/<alert_id>/dismiss', methods=['POST'])
@store_staff_required
def dismiss_alert(alert_id):
    """Hide an alert for the rest of this session"""
    dismissed = CashCloseService.dismiss_alert(session, alert_id)
    return jsonify({'success': True, 'dismissed': dismissed})
