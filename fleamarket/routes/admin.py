"""
Admin Routes
Dashboard, stores, users, return tokens and session logs (admin only)
"""

from datetime import datetime, timedelta
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.errors import FleaMarketError, CallableError
from fleamarket.models import db, User, SessionLog, ReturnToken
from fleamarket.services import datastore
from fleamarket.services.report_service import ReportService
from fleamarket.services.return_service import ReturnService
from fleamarket.services.user_service import UserService
from fleamarket.utils.permissions import admin_required

bp = Blueprint('admin', __name__)

STORE_FIELDS = ('name', 'address', 'phone', 'accepts_cash', 'accepts_card', 'accepts_transfer',
                'bank_name', 'account_holder', 'clabe', 'ticket_footer', 'is_active')


@bp.route('/')
@admin_required
def dashboard():
    """Sales dashboard for today, this week or this month"""
    period = request.args.get('period', 'day')
    if period not in ('day', 'week', 'month'):
        return jsonify({'success': False, 'error': 'period must be day, week or month'}), 400
    return jsonify(ReportService.dashboard(period))


# ============================================================
# STORES
# ============================================================

@bp.route('/stores', methods=['GET'])
@admin_required
def list_stores():
    stores = datastore.get_stores()
    today = datetime.now().date()
    result = []
    for store in stores:
        data = store.to_dict()
        data['users'] = [u.to_dict() for u in datastore.get_users_by_store(store.id)]
        data['today'] = ReportService.summarize(
            datastore.get_sales_for_day(store.id, today), include_commission=True
        )
        result.append(data)
    return jsonify({'stores': result})


@bp.route('/stores', methods=['POST'])
@admin_required
def create_store():
    data = request.get_json(silent=True) or {}
    if not (data.get('name') or '').strip():
        return jsonify({'success': False, 'error': 'Store name is required'}), 400

    try:
        store = datastore.create('stores', {k: data[k] for k in STORE_FIELDS if k in data})
        current_app.logger.info(f"Store {store.name} created by {current_user.email}")
        return jsonify({'success': True, 'store': store.to_dict()}), 201
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating store: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/stores/<int:store_id>', methods=['GET'])
@admin_required
def store_detail(store_id):
    """Store summary, staff and popular products for the last 30 days"""
    store = datastore.get_by_id('stores', store_id)
    now = datetime.now()
    start = now - timedelta(days=30)
    sales = datastore.get_sales_by_date_range(start, now + timedelta(seconds=1), store.id)
    return jsonify({
        'store': store.to_dict(),
        'summary': ReportService.summarize(sales, include_commission=True),
        'users': [u.to_dict() for u in datastore.get_users_by_store(store.id)],
        'top_products': datastore.get_top_selling_products(start, now + timedelta(seconds=1), store.id),
    })


@bp.route('/stores/<int:store_id>', methods=['PUT'])
@admin_required
def update_store(store_id):
    data = request.get_json(silent=True) or {}
    try:
        store = datastore.update('stores', store_id, {k: data[k] for k in STORE_FIELDS if k in data})
        return jsonify({'success': True, 'store': store.to_dict()})
    except FleaMarketError:
        raise
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating store {store_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/stores/<int:store_id>', methods=['DELETE'])
@admin_required
def delete_store(store_id):
    """Stores with history are deactivated instead of deleted"""
    store = datastore.get_by_id('stores', store_id)
    try:
        has_history = datastore.get_sales_by_store(store.id, limit=1) or store.users.count()
        if has_history:
            store.is_active = False
            db.session.commit()
            return jsonify({'success': True, 'deactivated': True})
        datastore.remove('stores', store.id)
        return jsonify({'success': True, 'deleted': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting store {store_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ============================================================
# USERS
# ============================================================

@bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    store_id = request.args.get('store_id', type=int)
    if store_id:
        users = datastore.get_users_by_store(store_id)
    else:
        users = User.query.order_by(User.name).all()
    return jsonify({'users': [u.to_dict() for u in users]})


@bp.route('/users', methods=['POST'])
def create_user():
    """
    createUser callable.

    Authentication and role checks happen inside the service so the
    caller gets the structured error codes.
    """
    data = request.get_json(silent=True) or {}
    try:
        result = UserService.create_user(current_user, data)
        return jsonify(result), 201
    except CallableError as e:
        return jsonify(e.to_dict()), e.status_code


@bp.route('/users/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    user = datastore.get_by_id('users', user_id)
    data = request.get_json(silent=True) or {}
    UserService.update_user(user, data)
    return jsonify({'success': True, 'user': user.to_dict()})


@bp.route('/users/<int:user_id>/toggle', methods=['POST'])
@admin_required
def toggle_user(user_id):
    """Enable or disable a user"""
    user = datastore.get_by_id('users', user_id)
    UserService.toggle_status(user, current_user)
    return jsonify({'success': True, 'is_active': user.is_active})


# ============================================================
# RETURN TOKENS
# ============================================================

@bp.route('/tokens', methods=['GET'])
@admin_required
def list_tokens():
    ReturnService.expire_tokens()
    tokens = ReturnToken.query.order_by(ReturnToken.created_at.desc()).limit(50).all()
    return jsonify({'tokens': [t.to_dict() for t in tokens]})


@bp.route('/tokens', methods=['POST'])
@admin_required
def generate_token():
    """Generate a six-digit return authorization code"""
    token = ReturnService.generate_super_token(current_user)
    return jsonify({'success': True, 'token': token.to_dict()}), 201


# ============================================================
# SESSION LOGS
# ============================================================

@bp.route('/session-logs')
@admin_required
def session_logs():
    query = SessionLog.query
    status = request.args.get('status')
    if status in ('success', 'failed'):
        query = query.filter_by(status=status)
    store_id = request.args.get('store_id', type=int)
    if store_id:
        query = query.filter_by(store_id=store_id)
    limit = min(request.args.get('limit', 100, type=int), 500)
    logs = query.order_by(SessionLog.created_at.desc()).limit(limit).all()
    return jsonify({'logs': [log.to_dict() for log in logs]})
