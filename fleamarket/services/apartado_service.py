"""
Apartado Service
Layaway lifecycle:
- Creation with minimum deposit and 15-day due date
- Installment payments with automatic completion at zero balance
- Cancellation, expiry sweep and delivery
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Dict, List, Optional

from fleamarket.errors import ValidationError, InvalidTransition
from fleamarket.models import (
    db, Apartado, ApartadoItem, ApartadoPayment, Sale, SaleItem, PAYMENT_METHODS
)
from fleamarket.services import datastore
from fleamarket.services.pricing import PricingService
from fleamarket.utils.formatting import to_decimal, get_day_type
from fleamarket.utils.helpers import config_value, generate_sale_number

logger = logging.getLogger(__name__)

# Sale type and item label for each kind of apartado payment
SALE_LABELS = {
    'apartado_deposit': 'Anticipo Apartado',
    'apartado_payment': 'Abono Apartado',
    'apartado_complete': 'Liquidación Apartado',
}


class ApartadoService:
    """Service for apartado (layaway) operations"""

    @staticmethod
    def minimum_deposit(total, percent=None) -> Decimal:
        """ceil(percent% of total), in whole pesos"""
        if percent is None:
            percent = config_value('APARTADO_MIN_DEPOSIT_PERCENT', 10)
        raw = to_decimal(total) * Decimal(str(percent)) / Decimal('100')
        return raw.to_integral_value(rounding=ROUND_CEILING)

    @staticmethod
    def generate_number(store_id) -> str:
        """APT-NNNN, sequential per store"""
        return f"APT-{datastore.count_apartados(store_id) + 1:04d}"

    @staticmethod
    def days_remaining(apartado, now: Optional[datetime] = None) -> int:
        """Whole days left until the due date, 0 once past due"""
        if not apartado.due_date:
            return 0
        now = now or datetime.now()
        seconds = (apartado.due_date - now).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    @staticmethod
    def create(
        store,
        client,
        items: List[Dict],
        total,
        deposit_amount,
        created_by=None,
        notes: str = '',
        payment_method: str = 'cash',
        now: Optional[datetime] = None
    ) -> Apartado:
        """
        Create an apartado for a registered client.

        Args:
            store: Store taking the layaway
            client: Client record; guest checkouts pass None
            items: Priced lines (product_id, name, category, price, quantity,
                promo_discount, final_price)
            total: Amount owed
            deposit_amount: Initial deposit, at least ceil(10% of total)
            created_by: User recording the apartado
            notes: Free text
            payment_method: Method used for the deposit
            now: Reference time

        Returns:
            The new Apartado (committed)
        """
        now = now or datetime.now()

        if client is None:
            raise ValidationError('A registered client is required to create an apartado')
        if not items:
            raise ValidationError('An apartado needs at least one item')
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f'Invalid payment method: {payment_method}')

        total = to_decimal(total)
        deposit = to_decimal(deposit_amount)
        if total <= 0:
            raise ValidationError('Apartado total must be greater than zero')

        required = ApartadoService.minimum_deposit(total)
        if deposit < required:
            raise ValidationError(f'Minimum deposit is {required:.2f}')
        if deposit > total:
            raise ValidationError('Deposit cannot exceed the apartado total')

        days_limit = config_value('APARTADO_DAYS_LIMIT', 15)

        apartado = Apartado(
            number=ApartadoService.generate_number(store.id),
            store_id=store.id,
            store_name=store.name,
            client_id=client.id,
            client_number=client.client_number,
            client_name=client.name,
            client_phone=client.phone,
            total=total,
            deposit_required=required,
            deposit_paid=Decimal('0.00'),
            remaining_balance=total,
            status='active',
            due_date=now + timedelta(days=days_limit),
            notes=notes or '',
            created_by=created_by.id if created_by else None,
            created_by_name=created_by.name if created_by else None,
            created_at=now,
        )
        for line in items:
            price = to_decimal(line.get('price'))
            quantity = int(line.get('quantity', 1))
            apartado.items.append(ApartadoItem(
                product_id=line.get('product_id'),
                name=line.get('name', ''),
                category=line.get('category'),
                unit_price=price,
                quantity=quantity,
                promo_discount=to_decimal(line.get('promo_discount')),
                final_price=to_decimal(line.get('final_price', price * quantity)),
            ))
        db.session.add(apartado)
        db.session.flush()

        if deposit > 0:
            ApartadoService._apply_payment(apartado, deposit, payment_method, created_by,
                                           'apartado_deposit', now)
        db.session.commit()
        logger.info(f"Apartado {apartado.number} created for client {client.client_number}, "
                    f"total {total}, deposit {deposit}")

        # Reserved goods leave the shelf
        for item in apartado.items:
            if item.product_id:
                try:
                    datastore.decrement_stock(item.product_id, item.quantity)
                except Exception as e:
                    db.session.rollback()
                    logger.error(f"Stock update failed for apartado {apartado.number}: {e}")

        return apartado

    @staticmethod
    def add_payment(apartado, amount, payment_method='cash', received_by=None,
                    now: Optional[datetime] = None) -> Apartado:
        """
        Register an installment.

        Requires an active apartado and 0 < amount <= remaining balance.
        Completes the apartado when the balance reaches exactly zero.
        """
        now = now or datetime.now()
        amount = to_decimal(amount)

        if apartado.status != 'active':
            raise InvalidTransition(f'Apartado {apartado.number} is {apartado.status}')
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f'Invalid payment method: {payment_method}')
        if amount <= 0:
            raise ValidationError('Payment amount must be greater than zero')
        if amount > to_decimal(apartado.remaining_balance):
            raise ValidationError(
                f'Payment exceeds remaining balance of {to_decimal(apartado.remaining_balance):.2f}'
            )

        will_complete = amount == to_decimal(apartado.remaining_balance)
        sale_type = 'apartado_complete' if will_complete else 'apartado_payment'
        ApartadoService._apply_payment(apartado, amount, payment_method, received_by, sale_type, now)
        db.session.commit()

        logger.info(f"Payment of {amount} on apartado {apartado.number}, "
                    f"remaining {apartado.remaining_balance}")
        return apartado

    @staticmethod
    def cancel(apartado, reason: str = '', cancelled_by=None, now: Optional[datetime] = None) -> Apartado:
        """Cancel an active apartado. Deposits are kept; no refund is recorded."""
        if apartado.status != 'active':
            raise InvalidTransition(f'Only active apartados can be cancelled ({apartado.status})')
        apartado.status = 'cancelled'
        apartado.cancel_reason = reason or ''
        apartado.cancelled_at = now or datetime.now()
        db.session.commit()
        logger.info(f"Apartado {apartado.number} cancelled by "
                    f"{cancelled_by.name if cancelled_by else 'system'}: {reason}")
        return apartado

    @staticmethod
    def check_expired(store_id, now: Optional[datetime] = None) -> List[int]:
        """
        Flip active apartados of a store whose due date has passed to expired.

        Returns:
            Ids of the apartados that expired in this call
        """
        now = now or datetime.now()
        overdue = Apartado.query.filter(
            Apartado.store_id == store_id,
            Apartado.status == 'active',
            Apartado.due_date < now
        ).all()

        for apartado in overdue:
            apartado.status = 'expired'
            apartado.expired_at = now
        if overdue:
            db.session.commit()
            logger.info(f"Expired {len(overdue)} apartados in store {store_id}")
        return [a.id for a in overdue]

    @staticmethod
    def check_expired_for_client(client_id, now: Optional[datetime] = None) -> List[int]:
        """Run the expiry check on every store holding an active apartado of the client"""
        store_ids = {
            a.store_id for a in Apartado.query.filter_by(client_id=client_id, status='active').all()
        }
        expired = []
        for store_id in sorted(store_ids):
            expired.extend(ApartadoService.check_expired(store_id, now))
        return expired

    @staticmethod
    def complete(apartado, delivered_by=None, now: Optional[datetime] = None) -> Apartado:
        """Mark a fully paid apartado as delivered"""
        now = now or datetime.now()
        if apartado.status not in ('active', 'completed'):
            raise InvalidTransition(f'Apartado {apartado.number} is {apartado.status}')
        if apartado.delivered_at:
            raise InvalidTransition(f'Apartado {apartado.number} was already delivered')
        if to_decimal(apartado.remaining_balance) != 0:
            raise InvalidTransition(
                f'Apartado {apartado.number} still owes {to_decimal(apartado.remaining_balance):.2f}'
            )

        apartado.status = 'completed'
        apartado.completed_at = apartado.completed_at or now
        apartado.delivered_at = now
        db.session.commit()
        logger.info(f"Apartado {apartado.number} delivered by "
                    f"{delivered_by.name if delivered_by else 'system'}")
        return apartado

    @staticmethod
    def store_stats(store_id) -> Dict:
        apartados = datastore.get_apartados_by_store(store_id)
        counts = {'active': 0, 'completed': 0, 'cancelled': 0, 'expired': 0}
        pending = Decimal('0.00')
        collected = Decimal('0.00')
        for apartado in apartados:
            counts[apartado.status] = counts.get(apartado.status, 0) + 1
            collected += to_decimal(apartado.deposit_paid)
            if apartado.status == 'active':
                pending += to_decimal(apartado.remaining_balance)
        return {
            'total': len(apartados),
            'counts': counts,
            'pending_balance': float(pending),
            'collected': float(collected),
        }

    @staticmethod
    def _apply_payment(apartado, amount, payment_method, user, sale_type, now):
        """Append the payment, move the balance and write the matching sale"""
        apartado.payments.append(ApartadoPayment(
            amount=amount,
            payment_method=payment_method,
            received_by=user.id if user else None,
            received_by_name=user.name if user else None,
            created_at=now,
        ))
        apartado.deposit_paid = to_decimal(apartado.deposit_paid) + amount
        apartado.remaining_balance = to_decimal(apartado.total) - to_decimal(apartado.deposit_paid)

        if apartado.remaining_balance == 0:
            apartado.status = 'completed'
            apartado.completed_at = now
            if sale_type == 'apartado_payment':
                sale_type = 'apartado_complete'

        ApartadoService._record_sale(apartado, amount, payment_method, user, sale_type, now)

    @staticmethod
    def _record_sale(apartado, amount, payment_method, user, sale_type, now):
        """Money received for an apartado is also a sale so it reaches the cash close"""
        label = f"{SALE_LABELS[sale_type]} {apartado.number}"
        commission = PricingService.card_commission(
            amount, payment_method, config_value('CARD_COMMISSION_RATE', Decimal('0.04'))
        )
        sale = Sale(
            sale_number=generate_sale_number(apartado.store_id, now),
            store_id=apartado.store_id,
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            client_id=apartado.client_id,
            customer_name=apartado.client_name,
            subtotal=amount,
            promo_discount=Decimal('0.00'),
            vip_discount=Decimal('0.00'),
            total=amount,
            payment_method=payment_method,
            card_commission=commission,
            status='normal',
            sale_type=sale_type,
            apartado_id=apartado.id,
            day_type=get_day_type(now),
            created_at=now,
        )
        sale.items.append(SaleItem(
            name=label,
            category='Apartado',
            unit_price=amount,
            quantity=1,
            promo_discount=Decimal('0.00'),
            final_price=amount,
        ))
        db.session.add(sale)
        db.session.flush()
        return sale
