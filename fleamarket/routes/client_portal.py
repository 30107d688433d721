"""
Client Portal Routes
Public customer view keyed by a scanned client number
"""

from datetime import datetime
from decimal import Decimal
from flask import Blueprint, jsonify, current_app
from fleamarket.services import datastore
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.utils.formatting import to_decimal

bp = Blueprint('client_portal', __name__)


@bp.route('/<client_number>')
def client_home(client_number):
    """VIP progress and open apartados for a client"""
    client = datastore.get_client_by_number(client_number)
    if client is None:
        return jsonify({'success': False, 'error': 'Client not found'}), 404

    now = datetime.now()
    ApartadoService.check_expired_for_client(client.id, now)
    threshold = to_decimal(current_app.config.get('VIP_THRESHOLD', 2000))
    monthly = client.monthly_purchases(now)
    is_vip = monthly >= threshold

    apartados = datastore.get_apartados_by_client(client.id)
    return jsonify({
        'success': True,
        'client': {
            'client_number': client.client_number,
            'name': client.name,
        },
        'monthly_purchases': float(monthly),
        'is_vip': is_vip,
        'vip_threshold': float(threshold),
        'amount_to_vip': float(max(Decimal('0.00'), threshold - monthly)),
        'vip_discount_percent': float(to_decimal(current_app.config.get('VIP_DISCOUNT_RATE', 0.15)) * 100),
        'apartados': [
            {
                'number': a.number,
                'store_name': a.store_name or '',
                'total': float(to_decimal(a.total)),
                'deposit_paid': float(to_decimal(a.deposit_paid)),
                'remaining_balance': float(to_decimal(a.remaining_balance)),
                'status': a.status,
                'due_date': a.due_date.isoformat() if a.due_date else None,
                'days_remaining': ApartadoService.days_remaining(a, now),
            }
            for a in apartados if a.status == 'active'
        ],
    })
