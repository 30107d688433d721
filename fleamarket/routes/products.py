"""
Product Routes
Catalog management shared by all stores
"""

from decimal import Decimal, InvalidOperation
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from fleamarket.errors import ValidationError
from fleamarket.models import db, SaleItem, ApartadoItem
from fleamarket.services import datastore
from fleamarket.utils.permissions import store_staff_required

bp = Blueprint('products', __name__)


def _product_fields(data, partial=False):
    fields = {}

    if 'name' in data or not partial:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError('Product name is required')
        fields['name'] = name

    for key in ('category', 'sku'):
        if key in data:
            fields[key] = (data.get(key) or '').strip() or None

    for key in ('price', 'cost'):
        if key in data or (key == 'price' and not partial):
            try:
                value = Decimal(str(data.get(key, 0) or 0))
            except InvalidOperation:
                raise ValidationError(f'{key} must be a number')
            if value < 0:
                raise ValidationError(f'{key} cannot be negative')
            fields[key] = value

    if 'stock' in data:
        try:
            stock = int(data.get('stock') or 0)
        except (TypeError, ValueError):
            raise ValidationError('stock must be an integer')
        if stock < 0:
            raise ValidationError('stock cannot be negative')
        fields['stock'] = stock

    return fields


@bp.route('/', methods=['GET'])
@store_staff_required
def list_products():
    """?q= searches name, sku and category; ?category= filters"""
    term = request.args.get('q', '').strip()
    category = request.args.get('category')
    if term:
        products = datastore.search_products(term)
    elif category:
        products = datastore.get_products_by_category(category)
    else:
        products = datastore.get_products_ordered_by_name()
    return jsonify({'products': [p.to_dict() for p in products]})


@bp.route('/categories')
@store_staff_required
def categories():
    return jsonify({'categories': datastore.get_categories()})


@bp.route('/<int:product_id>', methods=['GET'])
@store_staff_required
def product_detail(product_id):
    return jsonify({'product': datastore.get_by_id('products', product_id).to_dict()})


@bp.route('/', methods=['POST'])
@store_staff_required
def create_product():
    fields = _product_fields(request.get_json(silent=True) or {})
    try:
        product = datastore.create('products', fields)
        current_app.logger.info(f"Product '{product.name}' created by {current_user.email}")
        return jsonify({'success': True, 'product': product.to_dict()}), 201
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating product: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<int:product_id>', methods=['PUT'])
@store_staff_required
def update_product(product_id):
    datastore.get_by_id('products', product_id)
    fields = _product_fields(request.get_json(silent=True) or {}, partial=True)
    try:
        product = datastore.update('products', product_id, fields)
        return jsonify({'success': True, 'product': product.to_dict()})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating product {product_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<int:product_id>', methods=['DELETE'])
@store_staff_required
def delete_product(product_id):
    """Line items keep their name snapshot; the product link is cleared"""
    datastore.get_by_id('products', product_id)
    try:
        SaleItem.query.filter_by(product_id=product_id).update({'product_id': None})
        ApartadoItem.query.filter_by(product_id=product_id).update({'product_id': None})
        datastore.remove('products', product_id)
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting product {product_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
