"""
Checkout Service
Turns a cart into a recorded sale (or an apartado):
- Resolves products and prices the cart
- Writes the sale, then stock, then the client purchase as separate commits
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fleamarket.errors import ValidationError, NotFoundError
from fleamarket.models import (
    db, Product, Sale, SaleItem, GUEST_CLIENT_ID, GUEST_CLIENT_NAME, PAYMENT_METHODS
)
from fleamarket.services import datastore
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.services.pricing import PricingService
from fleamarket.utils.formatting import to_decimal, get_day_type
from fleamarket.utils.helpers import config_value, generate_sale_number

logger = logging.getLogger(__name__)


class CheckoutService:
    """Service for point-of-sale checkout"""

    @staticmethod
    def resolve_client(client_ref):
        """
        Look up the selected client.

        Accepts a 5-digit client number or the guest marker; guest and
        empty references resolve to None.
        """
        if client_ref in (None, '', GUEST_CLIENT_ID):
            return None
        client = datastore.get_client_by_number(client_ref)
        if client is None:
            raise NotFoundError(f'Client {client_ref} not found')
        return client

    @staticmethod
    def build_cart(raw_items: List[Dict]) -> List[Dict]:
        """Resolve cart entries ({product_id, quantity}) against the catalog"""
        if not raw_items:
            raise ValidationError('Cart is empty')

        lines = []
        for entry in raw_items:
            product_id = entry.get('product_id')
            try:
                quantity = int(entry.get('quantity', 1) or 0)
            except (TypeError, ValueError):
                raise ValidationError('Quantity must be a whole number')
            if quantity <= 0:
                raise ValidationError('Quantity must be at least 1')
            product = db.session.get(Product, product_id) if product_id is not None else None
            if product is None:
                raise NotFoundError(f'Product {product_id} not found')
            lines.append({
                'product_id': product.id,
                'name': product.name,
                'category': product.category,
                'price': to_decimal(product.price),
                'quantity': quantity,
            })
        return lines

    @staticmethod
    def quote(store, raw_items: List[Dict], client=None, payment_method: str = 'cash',
              now: Optional[datetime] = None) -> Dict:
        """Price a cart without writing anything"""
        now = now or datetime.now()
        lines = CheckoutService.build_cart(raw_items)
        promotions = datastore.get_active_promotions(store.id, now)
        threshold = config_value('VIP_THRESHOLD', 2000)
        is_vip = client.is_vip(threshold, now) if client is not None else False

        return PricingService.price_cart(
            lines,
            promotions=promotions,
            store_id=store.id,
            is_vip=is_vip,
            payment_method=payment_method,
            vip_rate=config_value('VIP_DISCOUNT_RATE', Decimal('0.15')),
            commission_rate=config_value('CARD_COMMISSION_RATE', Decimal('0.04')),
            now=now,
        )

    @staticmethod
    def submit_sale(store, user, raw_items: List[Dict], client=None, payment_method: str = 'cash',
                    cash_received=None, now: Optional[datetime] = None) -> Sale:
        """
        Record a sale.

        The sale, the stock decrements and the client purchase are
        independent writes: a failure after the sale is committed is
        logged and the sale stands.
        """
        now = now or datetime.now()
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f'Invalid payment method: {payment_method}')
        if not store.accepts(payment_method):
            raise ValidationError(f'{store.name} does not accept {payment_method} payments')

        priced = CheckoutService.quote(store, raw_items, client, payment_method, now)
        total = priced['total']

        received = None
        change = None
        if payment_method == 'cash':
            received = to_decimal(cash_received) if cash_received not in (None, '') else total
            if received < total:
                raise ValidationError('Cash received is less than the total')
            change = received - total

        sale = Sale(
            sale_number=generate_sale_number(store.id, now),
            store_id=store.id,
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            client_id=client.id if client else None,
            customer_name=client.name if client else GUEST_CLIENT_NAME,
            subtotal=priced['subtotal'],
            promo_discount=priced['promo_discount'],
            vip_discount=priced['vip_discount'],
            total=total,
            payment_method=payment_method,
            card_commission=priced['card_commission'],
            cash_received=received,
            change_given=change,
            status='normal',
            sale_type='sale',
            day_type=get_day_type(now),
            created_at=now,
        )
        for line in priced['items']:
            sale.items.append(SaleItem(
                product_id=line['product_id'],
                name=line['name'],
                category=line['category'],
                unit_price=line['price'],
                quantity=line['quantity'],
                promo_discount=line['promo_discount'],
                final_price=line['final_price'],
            ))
        db.session.add(sale)
        db.session.commit()
        logger.info(f"Sale {sale.sale_number} recorded in store {store.id}: {total} ({payment_method})")

        for line in priced['items']:
            try:
                datastore.decrement_stock(line['product_id'], line['quantity'])
            except Exception as e:
                db.session.rollback()
                logger.error(f"Stock update failed for product {line['product_id']} "
                             f"after sale {sale.sale_number}: {e}")

        if client is not None:
            try:
                datastore.add_client_purchase(client.id, sale.id, store.id, total, now)
            except Exception as e:
                db.session.rollback()
                logger.error(f"Client purchase not recorded for sale {sale.sale_number}: {e}")

        return sale

    @staticmethod
    def create_apartado(store, user, raw_items: List[Dict], client, deposit_amount,
                        payment_method: str = 'cash', notes: str = '',
                        now: Optional[datetime] = None):
        """Price the cart and reserve it as an apartado instead of selling it"""
        now = now or datetime.now()
        if client is None:
            raise ValidationError('A registered client is required to create an apartado')
        if not store.accepts(payment_method):
            raise ValidationError(f'{store.name} does not accept {payment_method} payments')

        priced = CheckoutService.quote(store, raw_items, client, 'cash', now)
        return ApartadoService.create(
            store,
            client,
            priced['items'],
            priced['total'],
            deposit_amount,
            created_by=user,
            notes=notes,
            payment_method=payment_method,
            now=now,
        )
