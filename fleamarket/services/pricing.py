"""
Pricing Service
Checkout discount computation:
- Category percentage promotions (first active match wins)
- VIP discount applied after promotions
- Hidden card commission on the final total
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from fleamarket.utils.formatting import to_decimal

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
HUNDRED = Decimal('100')

DEFAULT_VIP_THRESHOLD = Decimal('2000')
DEFAULT_VIP_DISCOUNT_RATE = Decimal('0.15')
DEFAULT_CARD_COMMISSION_RATE = Decimal('0.04')


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingService:
    """Pure discount arithmetic over cart lines"""

    @staticmethod
    def find_promotion(promotions, category: str, store_id=None, now: Optional[datetime] = None):
        """
        First active percentage promotion for a category.

        Args:
            promotions: Promotion records ordered by id
            category: Category of the cart line
            store_id: Store where the sale happens; global promotions always apply
            now: Reference time for the derived status

        Returns:
            Promotion or None
        """
        if not category:
            return None
        now = now or datetime.now()
        for promo in promotions:
            if promo.promo_type != 'percentage':
                continue
            if promo.category != category:
                continue
            if store_id is not None and not promo.applies_to_store(store_id):
                continue
            if promo.status(now) != 'active':
                continue
            return promo
        return None

    @staticmethod
    def line_promo_discount(price, quantity, percentage) -> Decimal:
        """price x quantity x value / 100, rounded to cents"""
        gross = to_decimal(price) * int(quantity)
        return _round(gross * Decimal(str(percentage)) / HUNDRED)

    @staticmethod
    def vip_discount(subtotal, promo_discount, rate=DEFAULT_VIP_DISCOUNT_RATE) -> Decimal:
        """VIP rate applied on the amount left after promotions"""
        base = to_decimal(subtotal) - to_decimal(promo_discount)
        if base <= 0:
            return Decimal('0.00')
        return _round(base * Decimal(str(rate)))

    @staticmethod
    def card_commission(total, payment_method, rate=DEFAULT_CARD_COMMISSION_RATE) -> Decimal:
        if payment_method != 'card':
            return Decimal('0.00')
        return _round(to_decimal(total) * Decimal(str(rate)))

    @staticmethod
    def is_vip(monthly_purchases, threshold=DEFAULT_VIP_THRESHOLD) -> bool:
        return to_decimal(monthly_purchases) >= Decimal(str(threshold))

    @staticmethod
    def price_cart(
        lines: List[Dict],
        promotions=(),
        store_id=None,
        is_vip: bool = False,
        payment_method: str = 'cash',
        vip_rate=DEFAULT_VIP_DISCOUNT_RATE,
        commission_rate=DEFAULT_CARD_COMMISSION_RATE,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Price a cart.

        Each line needs price, quantity and category (product_id and name
        are carried through). Returns the priced lines with per-line promo
        discount and final price, plus subtotal, promo_discount,
        vip_discount, total and card_commission.

        Example:
            subtotal 1000, 10% category promo, VIP client
            -> promo 100, VIP 135, total 765
        """
        now = now or datetime.now()
        priced = []
        subtotal = Decimal('0.00')
        promo_total = Decimal('0.00')

        for line in lines:
            price = to_decimal(line['price'])
            quantity = int(line.get('quantity', 1))
            gross = _round(price * quantity)

            promo = PricingService.find_promotion(promotions, line.get('category'), store_id, now)
            discount = Decimal('0.00')
            if promo is not None:
                discount = PricingService.line_promo_discount(price, quantity, promo.value)

            priced.append({
                'product_id': line.get('product_id'),
                'name': line.get('name', ''),
                'category': line.get('category') or '',
                'price': price,
                'quantity': quantity,
                'promo_discount': discount,
                'promotion_id': promo.id if promo is not None else None,
                'final_price': gross - discount,
            })
            subtotal += gross
            promo_total += discount

        vip = PricingService.vip_discount(subtotal, promo_total, vip_rate) if is_vip else Decimal('0.00')
        total = subtotal - promo_total - vip
        commission = PricingService.card_commission(total, payment_method, commission_rate)

        return {
            'items': priced,
            'subtotal': subtotal,
            'promo_discount': promo_total,
            'vip_discount': vip,
            'is_vip': is_vip,
            'total': total,
            'payment_method': payment_method,
            'card_commission': commission,
        }
