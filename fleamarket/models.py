"""
Database Models
SQLAlchemy ORM models for the Flea Market POS
"""

from datetime import datetime
from decimal import Decimal
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

GUEST_CLIENT_ID = 'mostrador'
GUEST_CLIENT_NAME = 'Cliente Mostrador'

PAYMENT_METHODS = ('cash', 'card', 'transfer')


def _money(value):
    """Numeric column value as float for JSON payloads"""
    return float(value or 0)


def _iso(value):
    return value.isoformat() if value else None


class Store(db.Model):
    """A physical store (tienda)"""
    __tablename__ = 'stores'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    address = db.Column(db.String(256))
    phone = db.Column(db.String(32))

    # Accepted payment methods
    accepts_cash = db.Column(db.Boolean, default=True)
    accepts_card = db.Column(db.Boolean, default=True)
    accepts_transfer = db.Column(db.Boolean, default=True)

    # Bank transfer details
    bank_name = db.Column(db.String(128))
    account_holder = db.Column(db.String(128))
    clabe = db.Column(db.String(32))

    ticket_footer = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    users = db.relationship('User', backref='store', lazy='dynamic')

    def accepts(self, payment_method):
        """Check whether the store takes a payment method"""
        return {
            'cash': bool(self.accepts_cash),
            'card': bool(self.accepts_card),
            'transfer': bool(self.accepts_transfer),
        }.get(payment_method, False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address or '',
            'phone': self.phone or '',
            'payment_methods': {
                'cash': bool(self.accepts_cash),
                'card': bool(self.accepts_card),
                'transfer': bool(self.accepts_transfer),
            },
            'bank_details': {
                'bank_name': self.bank_name or '',
                'account_holder': self.account_holder or '',
                'clabe': self.clabe or '',
            },
            'ticket_footer': self.ticket_footer or '',
            'is_active': bool(self.is_active),
        }

    def __repr__(self):
        return f'<Store {self.name}>'


class User(UserMixin, db.Model):
    """Staff account for authentication and role-based routing"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(32), nullable=False, default='seller')
    # Roles: admin, seller ('cashier' is stored as seller)
    schedule_type = db.Column(db.String(16), default='weekday')  # weekday, weekend
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'))
    pin = db.Column(db.String(16))
    is_active = db.Column(db.Boolean, default=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def has_role(self, *role_names):
        """Check if user holds any of the given roles"""
        normalized = {'seller' if r == 'cashier' else r for r in role_names}
        return self.role in normalized

    @property
    def home_path(self):
        """Landing area for the user's role"""
        return '/admin' if self.is_admin else '/store'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'schedule_type': self.schedule_type,
            'store_id': self.store_id,
            'store_name': self.store.name if self.store else None,
            'is_active': bool(self.is_active),
            'last_login': _iso(self.last_login),
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Product(db.Model):
    """Product catalog shared by all stores"""
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(256), nullable=False, index=True)
    category = db.Column(db.String(128), index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cost = db.Column(db.Numeric(10, 2), default=0)
    sku = db.Column(db.String(64), index=True)
    stock = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category or '',
            'price': _money(self.price),
            'cost': _money(self.cost),
            'sku': self.sku or '',
            'stock': self.stock or 0,
        }

    def __repr__(self):
        return f'<Product {self.name}>'


class Client(db.Model):
    """Registered customer, identified by a 5-digit client number"""
    __tablename__ = 'clients'

    id = db.Column(db.Integer, primary_key=True)
    client_number = db.Column(db.String(5), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    phone = db.Column(db.String(32), index=True)
    email = db.Column(db.String(120))
    notes = db.Column(db.Text)

    registered_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    registered_by_name = db.Column(db.String(128))
    registered_store_id = db.Column(db.Integer, db.ForeignKey('stores.id'))

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    purchases = db.relationship('ClientPurchase', backref='client', lazy='dynamic',
                                cascade='all, delete-orphan')

    def monthly_purchases(self, now=None):
        """Sum of purchases since the first day of the current calendar month"""
        now = now or datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        total = db.session.query(db.func.sum(ClientPurchase.total))\
            .filter(ClientPurchase.client_id == self.id,
                    ClientPurchase.created_at >= month_start,
                    ClientPurchase.created_at <= now)\
            .scalar()
        return Decimal(str(total or 0))

    def is_vip(self, threshold, now=None):
        return self.monthly_purchases(now) >= Decimal(str(threshold))

    def to_dict(self, threshold=None, now=None):
        data = {
            'id': self.id,
            'client_number': self.client_number,
            'name': self.name,
            'phone': self.phone or '',
            'email': self.email or '',
            'notes': self.notes or '',
            'registered_by': self.registered_by,
            'registered_by_name': self.registered_by_name or '',
            'registered_store_id': self.registered_store_id,
            'created_at': _iso(self.created_at),
        }
        if threshold is not None:
            monthly = self.monthly_purchases(now)
            data['monthly_purchases'] = float(monthly)
            data['is_vip'] = monthly >= Decimal(str(threshold))
        return data

    def __repr__(self):
        return f'<Client {self.client_number} {self.name}>'


class ClientPurchase(db.Model):
    """Purchase history row for a client, one per sale"""
    __tablename__ = 'client_purchases'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'))
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'))
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def __repr__(self):
        return f'<ClientPurchase {self.client_id} - {self.total}>'


class Promotion(db.Model):
    """Category percentage promotion; status is derived, never stored"""
    __tablename__ = 'promotions'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(128), nullable=False, index=True)
    promo_type = db.Column(db.String(16), default='percentage')
    value = db.Column(db.Numeric(5, 2), nullable=False)
    store_ids = db.Column(db.JSON, default=list)  # empty list means global
    is_active = db.Column(db.Boolean, default=True)
    start_at = db.Column(db.DateTime)
    finish_at = db.Column(db.DateTime)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def is_global(self):
        return not self.store_ids

    def applies_to_store(self, store_id):
        return self.is_global or store_id in (self.store_ids or [])

    def status(self, now=None):
        """active, scheduled, expired or inactive relative to now"""
        now = now or datetime.now()
        if not self.is_active:
            return 'inactive'
        if self.finish_at and self.finish_at < now:
            return 'expired'
        if self.start_at and self.start_at > now:
            return 'scheduled'
        return 'active'

    def to_dict(self, now=None):
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'type': self.promo_type,
            'value': _money(self.value),
            'store_ids': list(self.store_ids or []),
            'is_global': self.is_global,
            'is_active': bool(self.is_active),
            'start_at': _iso(self.start_at),
            'finish_at': _iso(self.finish_at),
            'status': self.status(now),
        }

    def __repr__(self):
        return f'<Promotion {self.title}>'


class Sale(db.Model):
    """Sales transactions; immutable except the flip to returned"""
    __tablename__ = 'sales'

    id = db.Column(db.Integer, primary_key=True)
    sale_number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False, index=True)

    # Seller
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    user_name = db.Column(db.String(128))

    # Customer (guest checkouts keep client_id empty)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'))
    customer_name = db.Column(db.String(128), default=GUEST_CLIENT_NAME)

    # Amounts
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    promo_discount = db.Column(db.Numeric(10, 2), default=0)
    vip_discount = db.Column(db.Numeric(10, 2), default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # Payment
    payment_method = db.Column(db.String(16), nullable=False, default='cash')  # cash, card, transfer
    card_commission = db.Column(db.Numeric(10, 2), default=0)
    cash_received = db.Column(db.Numeric(10, 2))
    change_given = db.Column(db.Numeric(10, 2))

    # Classification
    status = db.Column(db.String(16), default='normal')  # normal, returned
    sale_type = db.Column(db.String(32), default='sale')
    # sale, apartado_deposit, apartado_payment, apartado_complete
    apartado_id = db.Column(db.Integer, db.ForeignKey('apartados.id'))
    day_type = db.Column(db.String(16))  # weekday, weekend

    # Return metadata
    returned_at = db.Column(db.DateTime)
    returned_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    returned_by_name = db.Column(db.String(128))
    return_authorized_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    return_token = db.Column(db.String(6))

    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    # Relationships
    items = db.relationship('SaleItem', backref='sale', lazy='select',
                            cascade='all, delete-orphan', order_by='SaleItem.id')
    store = db.relationship('Store')
    client = db.relationship('Client')

    @property
    def is_returned(self):
        return self.status == 'returned'

    def to_dict(self, include_commission=False):
        """
        Serialize a sale.

        The card commission is a shop-keeping figure: it is only included
        when include_commission is set (admin reports).
        """
        data = {
            'id': self.id,
            'sale_number': self.sale_number,
            'store_id': self.store_id,
            'user_id': self.user_id,
            'user_name': self.user_name or '',
            'client_id': self.client.client_number if self.client else GUEST_CLIENT_ID,
            'customer_name': self.customer_name or GUEST_CLIENT_NAME,
            'items': [item.to_dict() for item in self.items],
            'subtotal': _money(self.subtotal),
            'promo_discount': _money(self.promo_discount),
            'vip_discount': _money(self.vip_discount),
            'total': _money(self.total),
            'payment_method': self.payment_method,
            'cash_received': _money(self.cash_received) if self.cash_received is not None else None,
            'change': _money(self.change_given) if self.change_given is not None else None,
            'status': self.status,
            'sale_type': self.sale_type,
            'apartado_id': self.apartado_id,
            'day_type': self.day_type,
            'created_at': _iso(self.created_at),
        }
        if self.is_returned:
            data['return'] = {
                'returned_at': _iso(self.returned_at),
                'returned_by': self.returned_by,
                'returned_by_name': self.returned_by_name or '',
                'authorized_by': self.return_authorized_by,
            }
        if include_commission:
            data['card_commission'] = _money(self.card_commission)
            data['net_total'] = _money(self.total) - _money(self.card_commission)
        return data

    def __repr__(self):
        return f'<Sale {self.sale_number}>'


class SaleItem(db.Model):
    """Line item of a sale"""
    __tablename__ = 'sale_items'

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'))

    name = db.Column(db.String(256), nullable=False)
    category = db.Column(db.String(128))
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    promo_discount = db.Column(db.Numeric(10, 2), default=0)
    final_price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'category': self.category or '',
            'price': _money(self.unit_price),
            'quantity': self.quantity,
            'promo_discount': _money(self.promo_discount),
            'final_price': _money(self.final_price),
        }

    def __repr__(self):
        return f'<SaleItem {self.name} x{self.quantity}>'


class Apartado(db.Model):
    """Layaway: goods reserved against a deposit, paid off in installments"""
    __tablename__ = 'apartados'
    __table_args__ = (
        db.UniqueConstraint('store_id', 'number', name='uq_apartado_store_number'),
    )

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(16), nullable=False, index=True)  # APT-0001
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False, index=True)
    store_name = db.Column(db.String(128))

    # Client snapshot
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    client_number = db.Column(db.String(5))
    client_name = db.Column(db.String(128))
    client_phone = db.Column(db.String(32))

    # Balance
    total = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_required = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    remaining_balance = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default='active', index=True)
    # active, completed, cancelled, expired
    due_date = db.Column(db.DateTime, nullable=False)
    notes = db.Column(db.Text)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_by_name = db.Column(db.String(128))

    completed_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    cancel_reason = db.Column(db.Text)
    expired_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    items = db.relationship('ApartadoItem', backref='apartado', lazy='select',
                            cascade='all, delete-orphan', order_by='ApartadoItem.id')
    payments = db.relationship('ApartadoPayment', backref='apartado', lazy='select',
                               cascade='all, delete-orphan', order_by='ApartadoPayment.id')
    client = db.relationship('Client', backref=db.backref('apartados', lazy='dynamic'))

    TERMINAL_STATES = ('completed', 'cancelled', 'expired')

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATES

    def to_dict(self, now=None):
        from fleamarket.services.apartado_service import ApartadoService
        return {
            'id': self.id,
            'number': self.number,
            'store_id': self.store_id,
            'store_name': self.store_name or '',
            'client_id': self.client_number,
            'client_name': self.client_name or '',
            'client_phone': self.client_phone or '',
            'items': [item.to_dict() for item in self.items],
            'total': _money(self.total),
            'deposit_required': _money(self.deposit_required),
            'deposit_paid': _money(self.deposit_paid),
            'remaining_balance': _money(self.remaining_balance),
            'payments': [payment.to_dict() for payment in self.payments],
            'status': self.status,
            'due_date': _iso(self.due_date),
            'days_remaining': ApartadoService.days_remaining(self, now),
            'notes': self.notes or '',
            'created_by': self.created_by,
            'created_by_name': self.created_by_name or '',
            'completed_at': _iso(self.completed_at),
            'delivered_at': _iso(self.delivered_at),
            'cancelled_at': _iso(self.cancelled_at),
            'cancel_reason': self.cancel_reason or '',
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Apartado {self.number} ({self.status})>'


class ApartadoItem(db.Model):
    """Line item reserved by an apartado"""
    __tablename__ = 'apartado_items'

    id = db.Column(db.Integer, primary_key=True)
    apartado_id = db.Column(db.Integer, db.ForeignKey('apartados.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'))

    name = db.Column(db.String(256), nullable=False)
    category = db.Column(db.String(128))
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    promo_discount = db.Column(db.Numeric(10, 2), default=0)
    final_price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'category': self.category or '',
            'price': _money(self.unit_price),
            'quantity': self.quantity,
            'promo_discount': _money(self.promo_discount),
            'final_price': _money(self.final_price),
        }


class ApartadoPayment(db.Model):
    """Deposit or installment received for an apartado"""
    __tablename__ = 'apartado_payments'

    id = db.Column(db.Integer, primary_key=True)
    apartado_id = db.Column(db.Integer, db.ForeignKey('apartados.id'), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default='cash')
    received_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    received_by_name = db.Column(db.String(128))
    created_at = db.Column(db.DateTime, default=datetime.now)

    def to_dict(self):
        return {
            'amount': _money(self.amount),
            'payment_method': self.payment_method,
            'received_by': self.received_by,
            'received_by_name': self.received_by_name or '',
            'date': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<ApartadoPayment {self.amount}>'


class CashClose(db.Model):
    """Cash register reconciliation (corte de caja); never mutated"""
    __tablename__ = 'cash_closes'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False, index=True)
    store_name = db.Column(db.String(128))
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    user_name = db.Column(db.String(128))

    close_type = db.Column(db.String(16), nullable=False, default='manual')
    # morning, afternoon, evening, manual, limit
    close_label = db.Column(db.String(64))
    close_date = db.Column(db.Date, nullable=False, index=True)

    # Cash drawer
    expected_amount = db.Column(db.Numeric(12, 2), default=0)
    cash_amount = db.Column(db.Numeric(12, 2), default=0)
    difference = db.Column(db.Numeric(12, 2), default=0)  # counted - expected
    notes = db.Column(db.Text)

    # Snapshot since previous close
    sales_count = db.Column(db.Integer, default=0)
    total_sales = db.Column(db.Numeric(12, 2), default=0)
    cash_sales = db.Column(db.Numeric(12, 2), default=0)
    card_sales = db.Column(db.Numeric(12, 2), default=0)
    transfer_sales = db.Column(db.Numeric(12, 2), default=0)
    card_commission = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def to_dict(self, include_expected=True):
        """Expected amount, difference and commission are admin-only figures"""
        data = {
            'id': self.id,
            'store_id': self.store_id,
            'store_name': self.store_name or '',
            'user_id': self.user_id,
            'user_name': self.user_name or '',
            'close_type': self.close_type,
            'close_label': self.close_label or '',
            'close_date': _iso(self.close_date),
            'cash_amount': _money(self.cash_amount),
            'notes': self.notes or '',
            'sales_count': self.sales_count or 0,
            'total_sales': _money(self.total_sales),
            'payment_breakdown': {
                'cash': _money(self.cash_sales),
                'card': _money(self.card_sales),
                'transfer': _money(self.transfer_sales),
            },
            'created_at': _iso(self.created_at),
        }
        if include_expected:
            data['expected_amount'] = _money(self.expected_amount)
            data['difference'] = _money(self.difference)
            data['card_commission'] = _money(self.card_commission)
        return data

    def __repr__(self):
        return f'<CashClose {self.store_id} {self.close_type} {self.close_date}>'


class ReturnToken(db.Model):
    """Short-lived admin code that authorises a sale return"""
    __tablename__ = 'return_tokens'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), nullable=False, index=True)
    token_type = db.Column(db.String(16), default='return')
    status = db.Column(db.String(16), default='active')  # active, used, expired
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_by_name = db.Column(db.String(128))
    expires_at = db.Column(db.DateTime, nullable=False)
    used_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    used_by_name = db.Column(db.String(128))
    used_at = db.Column(db.DateTime)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'))
    created_at = db.Column(db.DateTime, default=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'type': self.token_type,
            'status': self.status,
            'created_by': self.created_by,
            'created_by_name': self.created_by_name or '',
            'expires_at': _iso(self.expires_at),
            'used_by_name': self.used_by_name or '',
            'used_at': _iso(self.used_at),
            'sale_id': self.sale_id,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<ReturnToken {self.code} ({self.status})>'


class SessionLog(db.Model):
    """Login attempts, successful or not"""
    __tablename__ = 'session_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    user_name = db.Column(db.String(128))
    email = db.Column(db.String(120))
    role = db.Column(db.String(32))
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'))
    action = db.Column(db.String(16), default='login')  # login, logout
    status = db.Column(db.String(16), default='success')  # success, failed
    failure_reason = db.Column(db.String(256))
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(512))

    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user_name or '',
            'email': self.email or '',
            'role': self.role or '',
            'store_id': self.store_id,
            'action': self.action,
            'status': self.status,
            'failure_reason': self.failure_reason or '',
            'ip_address': self.ip_address or '',
            'user_agent': self.user_agent or '',
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<SessionLog {self.email} {self.status}>'
