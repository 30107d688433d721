"""
Promotion Routes
Admin management of category promotions and the read-only store view
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.errors import ValidationError
from fleamarket.models import db, Promotion
from fleamarket.services import datastore
from fleamarket.utils.formatting import parse_datetime
from fleamarket.utils.permissions import admin_required, store_staff_required
from fleamarket.utils.store_context import store_required

bp = Blueprint('promotions', __name__)
store_bp = Blueprint('store_promotions', __name__)


def _promotion_fields(data, partial=False):
    """Validate a promotion payload and map it to model fields"""
    fields = {}

    if 'title' in data or not partial:
        title = (data.get('title') or '').strip()
        if not title:
            raise ValidationError('Title is required')
        fields['title'] = title

    if 'category' in data or not partial:
        category = (data.get('category') or '').strip()
        if not category:
            raise ValidationError('Category is required')
        fields['category'] = category

    if 'value' in data or not partial:
        try:
            value = Decimal(str(data.get('value')))
        except (InvalidOperation, TypeError):
            raise ValidationError('Value must be a number')
        if value <= 0 or value > 100:
            raise ValidationError('Percentage must be between 0 and 100')
        fields['value'] = value

    if 'store_ids' in data:
        store_ids = data.get('store_ids') or []
        if not isinstance(store_ids, list):
            raise ValidationError('store_ids must be a list')
        try:
            fields['store_ids'] = [int(s) for s in store_ids]
        except (TypeError, ValueError):
            raise ValidationError('store_ids must be store ids')
    elif not partial:
        fields['store_ids'] = []

    if 'is_active' in data:
        fields['is_active'] = bool(data.get('is_active'))

    for key in ('start_at', 'finish_at'):
        if key in data:
            try:
                fields[key] = parse_datetime(data.get(key))
            except ValueError:
                raise ValidationError(f'{key} is not a valid date')

    start_at = fields.get('start_at')
    finish_at = fields.get('finish_at')
    if start_at and finish_at and finish_at < start_at:
        raise ValidationError('finish_at must be after start_at')

    return fields


@bp.route('/', methods=['GET'])
@admin_required
def list_promotions():
    """All promotions with derived status; ?status= filters on it"""
    now = datetime.now()
    promotions = Promotion.query.order_by(Promotion.id).all()
    status = request.args.get('status')
    data = [p.to_dict(now) for p in promotions]
    if status:
        data = [p for p in data if p['status'] == status]
    return jsonify({'promotions': data})


@bp.route('/', methods=['POST'])
@admin_required
def create_promotion():
    data = request.get_json(silent=True) or {}
    fields = _promotion_fields(data)
    fields['promo_type'] = 'percentage'
    fields['created_by'] = current_user.id

    try:
        promotion = datastore.create('promotions', fields)
        current_app.logger.info(f"Promotion '{promotion.title}' created by {current_user.email}")
        return jsonify({'success': True, 'promotion': promotion.to_dict()}), 201
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating promotion: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<int:promotion_id>', methods=['PUT'])
@admin_required
def update_promotion(promotion_id):
    datastore.get_by_id('promotions', promotion_id)
    fields = _promotion_fields(request.get_json(silent=True) or {}, partial=True)
    promotion = datastore.update('promotions', promotion_id, fields)
    return jsonify({'success': True, 'promotion': promotion.to_dict()})


@bp.route('/<int:promotion_id>/toggle', methods=['POST'])
@admin_required
def toggle_promotion(promotion_id):
    promotion = datastore.get_by_id('promotions', promotion_id)
    promotion.is_active = not promotion.is_active
    db.session.commit()
    return jsonify({'success': True, 'promotion': promotion.to_dict()})


@bp.route('/<int:promotion_id>', methods=['DELETE'])
@admin_required
def delete_promotion(promotion_id):
    datastore.remove('promotions', promotion_id)
    return jsonify({'success': True})


@store_bp.route('/')
@store_staff_required
@store_required
def store_promotions(store):
    """Active promotions that apply to the working store"""
    now = datetime.now()
    promotions = datastore.get_active_promotions(store.id, now)
    return jsonify({'promotions': [p.to_dict(now) for p in promotions]})
