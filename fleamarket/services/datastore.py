"""
Data Access Layer
Generic CRUD by collection name plus the range queries the POS needs
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func

from fleamarket.errors import NotFoundError
from fleamarket.models import (
    db, User, Store, Product, Client, ClientPurchase, Promotion, Sale, SaleItem,
    CashClose, Apartado, ReturnToken, SessionLog
)
from fleamarket.utils.formatting import day_bounds

logger = logging.getLogger(__name__)

COLLECTIONS = {
    'users': User,
    'stores': Store,
    'products': Product,
    'clients': Client,
    'purchases': ClientPurchase,
    'promotions': Promotion,
    'sales': Sale,
    'cashCloses': CashClose,
    'apartados': Apartado,
    'tokens': ReturnToken,
    'sessionLogs': SessionLog,
}


def get_model(collection):
    """Resolve a collection name to its model class"""
    model = COLLECTIONS.get(collection)
    if model is None:
        raise NotFoundError(f"Unknown collection: {collection}")
    return model


# ============================================================
# GENERIC CRUD
# ============================================================

def get_all(collection, order_by=None, **filters):
    model = get_model(collection)
    query = model.query.filter_by(**filters)
    if order_by is not None:
        query = query.order_by(getattr(model, order_by))
    else:
        query = query.order_by(model.id)
    return query.all()


def get_by_id(collection, record_id):
    """Fetch one record or raise NotFoundError"""
    model = get_model(collection)
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{collection} {record_id} not found")
    return record


def create(collection, data: Dict, commit=True):
    """Insert a record; created_at is stamped by the model default"""
    model = get_model(collection)
    record = model(**data)
    db.session.add(record)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return record


def update(collection, record_id, data: Dict, commit=True):
    """Apply field updates; updated_at is stamped where the model has it"""
    record = get_by_id(collection, record_id)
    for key, value in data.items():
        if not hasattr(record, key):
            raise NotFoundError(f"{collection} has no field {key}")
        setattr(record, key, value)
    if hasattr(record, 'updated_at'):
        record.updated_at = datetime.now()
    if commit:
        db.session.commit()
    return record


def remove(collection, record_id, commit=True):
    record = get_by_id(collection, record_id)
    db.session.delete(record)
    if commit:
        db.session.commit()
    return True


# ============================================================
# SALES
# ============================================================

def get_sales_by_store(store_id, limit=None):
    query = Sale.query.filter_by(store_id=store_id).order_by(Sale.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_sales_by_date_range(start, end, store_id=None, include_returned=True):
    """Sales with start <= created_at < end, oldest first"""
    query = Sale.query.filter(Sale.created_at >= start, Sale.created_at < end)
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)
    if not include_returned:
        query = query.filter(Sale.status != 'returned')
    return query.order_by(Sale.created_at).all()


def get_sales_for_day(store_id, day, include_returned=True):
    start, end = day_bounds(day)
    return get_sales_by_date_range(start, end, store_id, include_returned)


def get_sales_by_day_type(day_type, start=None, end=None, store_id=None):
    query = Sale.query.filter(Sale.day_type == day_type, Sale.status != 'returned')
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)
    return query.all()


def get_top_selling_products(start, end, store_id=None, limit=5):
    """Top products by units sold; apartado ledger lines are excluded"""
    query = db.session.query(
        SaleItem.name,
        func.sum(SaleItem.quantity).label('quantity'),
        func.sum(SaleItem.final_price).label('revenue')
    ).join(Sale, SaleItem.sale_id == Sale.id).filter(
        Sale.created_at >= start,
        Sale.created_at < end,
        Sale.status != 'returned',
        Sale.sale_type == 'sale'
    )
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)

    rows = query.group_by(SaleItem.name).order_by(func.sum(SaleItem.quantity).desc()).limit(limit).all()
    return [{'name': r.name, 'quantity': int(r.quantity or 0), 'revenue': float(r.revenue or 0)}
            for r in rows]


def get_category_statistics(start, end, store_id=None):
    query = db.session.query(
        SaleItem.category,
        func.sum(SaleItem.quantity).label('quantity'),
        func.sum(SaleItem.final_price).label('revenue')
    ).join(Sale, SaleItem.sale_id == Sale.id).filter(
        Sale.created_at >= start,
        Sale.created_at < end,
        Sale.status != 'returned',
        Sale.sale_type == 'sale'
    )
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)

    rows = query.group_by(SaleItem.category).order_by(func.sum(SaleItem.final_price).desc()).all()
    return [{'category': r.category or 'Sin categoría', 'quantity': int(r.quantity or 0),
             'revenue': float(r.revenue or 0)} for r in rows]


# ============================================================
# USERS AND STORES
# ============================================================

def get_users_by_store(store_id):
    return User.query.filter_by(store_id=store_id).order_by(User.name).all()


def get_user_by_email(email):
    if not email:
        return None
    return User.query.filter(func.lower(User.email) == email.strip().lower()).first()


def get_stores(active_only=False):
    query = Store.query
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Store.name).all()


# ============================================================
# PRODUCTS
# ============================================================

def get_products_ordered_by_name():
    return Product.query.order_by(Product.name).all()


def get_products_by_category(category):
    return Product.query.filter_by(category=category).order_by(Product.name).all()


def get_categories() -> List[str]:
    rows = db.session.query(Product.category).filter(Product.category.isnot(None))\
        .distinct().order_by(Product.category).all()
    return [r[0] for r in rows if r[0]]


def search_products(term, limit=50):
    pattern = f"%{term}%"
    return Product.query.filter(
        (Product.name.ilike(pattern)) | (Product.sku.ilike(pattern)) | (Product.category.ilike(pattern))
    ).order_by(Product.name).limit(limit).all()


def decrement_stock(product_id, quantity, commit=True):
    """Read-then-write decrement, floored at zero"""
    product = db.session.get(Product, product_id)
    if product is None:
        logger.warning(f"Stock update skipped, product {product_id} not found")
        return None
    product.stock = max(0, (product.stock or 0) - int(quantity))
    if commit:
        db.session.commit()
    return product.stock


def increment_stock(product_id, quantity, commit=True):
    product = db.session.get(Product, product_id)
    if product is None:
        logger.warning(f"Restock skipped, product {product_id} not found")
        return None
    product.stock = (product.stock or 0) + int(quantity)
    if commit:
        db.session.commit()
    return product.stock


# ============================================================
# CLIENTS
# ============================================================

def get_client_by_number(client_number) -> Optional[Client]:
    if not client_number:
        return None
    return Client.query.filter_by(client_number=str(client_number).strip()).first()


def search_clients(term, limit=50):
    pattern = f"%{term}%"
    return Client.query.filter(
        (Client.name.ilike(pattern)) | (Client.phone.ilike(pattern)) | (Client.client_number.ilike(pattern))
    ).order_by(Client.name).limit(limit).all()


def add_client_purchase(client_id, sale_id, store_id, total, created_at=None, commit=True):
    purchase = ClientPurchase(
        client_id=client_id,
        sale_id=sale_id,
        store_id=store_id,
        total=total,
        created_at=created_at or datetime.now()
    )
    db.session.add(purchase)
    if commit:
        db.session.commit()
    return purchase


def get_client_monthly_purchases(client_id, now=None) -> Decimal:
    client = get_by_id('clients', client_id)
    return client.monthly_purchases(now)


def get_client_purchases_in_range(client_id, start, end) -> Decimal:
    total = db.session.query(func.sum(ClientPurchase.total)).filter(
        ClientPurchase.client_id == client_id,
        ClientPurchase.created_at >= start,
        ClientPurchase.created_at < end
    ).scalar()
    return Decimal(str(total or 0))


# ============================================================
# PROMOTIONS
# ============================================================

def get_active_promotions(store_id=None, now=None) -> List[Promotion]:
    """Promotions whose derived status is active, ordered by id"""
    now = now or datetime.now()
    candidates = Promotion.query.filter_by(is_active=True).order_by(Promotion.id).all()
    return [p for p in candidates
            if p.status(now) == 'active' and (store_id is None or p.applies_to_store(store_id))]


# ============================================================
# APARTADOS
# ============================================================

def get_apartados_by_store(store_id, status=None):
    query = Apartado.query.filter_by(store_id=store_id)
    if status and status != 'all':
        query = query.filter_by(status=status)
    return query.order_by(Apartado.created_at.desc()).all()


def get_apartados_by_client(client_id, status=None):
    query = Apartado.query.filter_by(client_id=client_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Apartado.created_at.desc()).all()


def get_pending_apartados(store_id):
    return Apartado.query.filter_by(store_id=store_id, status='active')\
        .order_by(Apartado.due_date).all()


def count_apartados(store_id):
    return Apartado.query.filter_by(store_id=store_id).count()


# ============================================================
# CASH CLOSES
# ============================================================

def get_cash_closes_for_day(store_id, day):
    return CashClose.query.filter_by(store_id=store_id, close_date=day)\
        .order_by(CashClose.created_at).all()


def get_cash_close_history(store_id, days=7, now=None):
    now = now or datetime.now()
    since = (now - timedelta(days=days)).date()
    return CashClose.query.filter(
        CashClose.store_id == store_id,
        CashClose.close_date > since
    ).order_by(CashClose.created_at.desc()).all()
