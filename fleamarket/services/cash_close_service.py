"""
Cash Close Service
Cash register reconciliation (corte de caja):
- Expected cash = today's cash sales (not returned) - cash already withdrawn by today's closes
- Close recording with signed difference
- Pending-close and cash-limit alerts
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from fleamarket.errors import ValidationError
from fleamarket.models import db, CashClose
from fleamarket.services import datastore
from fleamarket.utils.formatting import to_decimal
from fleamarket.utils.helpers import config_value

logger = logging.getLogger(__name__)

CLOSE_LABELS = {
    'morning': 'Corte Matutino',
    'afternoon': 'Corte Vespertino',
    'evening': 'Corte Nocturno',
    'manual': 'Corte de Caja',
    'limit': 'Corte por Límite de Caja',
}

DEFAULT_SCHEDULE = {'morning': 12, 'afternoon': 16, 'evening': 20}

DISMISSED_ALERTS_KEY = 'dismissed_cash_alerts'


class CashCloseService:
    """Service for cash-close computation and alerting"""

    @staticmethod
    def schedule() -> Dict[str, int]:
        return config_value('CASH_CLOSE_SCHEDULE', DEFAULT_SCHEDULE)

    @staticmethod
    def compute_expected_cash(store_id, day=None) -> Decimal:
        """
        Cash that should be in the register right now.

        Sum of the day's cash sales excluding returned ones, minus the
        counted cash of every close already recorded that day.
        """
        day = day or datetime.now().date()
        if isinstance(day, datetime):
            day = day.date()

        sales = datastore.get_sales_for_day(store_id, day, include_returned=False)
        cash_sales = sum((to_decimal(s.total) for s in sales if s.payment_method == 'cash'),
                         Decimal('0.00'))
        closes = datastore.get_cash_closes_for_day(store_id, day)
        withdrawn = sum((to_decimal(c.cash_amount) for c in closes), Decimal('0.00'))
        return cash_sales - withdrawn

    @staticmethod
    def summary_since_last_close(store_id, now: Optional[datetime] = None) -> Dict:
        """Sales count, totals, payment breakdown and card commission since the last close today"""
        now = now or datetime.now()
        day = now.date()
        closes = datastore.get_cash_closes_for_day(store_id, day)
        last_close_at = closes[-1].created_at if closes else None

        breakdown = {'cash': Decimal('0.00'), 'card': Decimal('0.00'), 'transfer': Decimal('0.00')}
        commission = Decimal('0.00')
        count = 0
        for sale in datastore.get_sales_for_day(store_id, day, include_returned=False):
            if last_close_at and sale.created_at <= last_close_at:
                continue
            if sale.created_at > now:
                continue
            method = sale.payment_method if sale.payment_method in breakdown else 'cash'
            breakdown[method] += to_decimal(sale.total)
            commission += to_decimal(sale.card_commission)
            count += 1

        return {
            'sales_count': count,
            'total_sales': sum(breakdown.values(), Decimal('0.00')),
            'payment_breakdown': breakdown,
            'card_commission': commission,
            'last_close_at': last_close_at,
        }

    @staticmethod
    def record_close(store, user, close_type='manual', counted_amount=0, notes='',
                     now: Optional[datetime] = None) -> CashClose:
        """
        Persist a cash close.

        The expected amount is computed at submission time and never
        recomputed. Repeated closes for the same window are accepted.
        """
        now = now or datetime.now()
        if close_type not in CLOSE_LABELS:
            raise ValidationError(f'Invalid close type: {close_type}')
        if counted_amount is None or counted_amount == '':
            raise ValidationError('Counted cash amount is required')
        counted = to_decimal(counted_amount)
        if counted < 0:
            raise ValidationError('Counted cash amount cannot be negative')

        expected = CashCloseService.compute_expected_cash(store.id, now.date())
        summary = CashCloseService.summary_since_last_close(store.id, now)
        breakdown = summary['payment_breakdown']

        cash_close = CashClose(
            store_id=store.id,
            store_name=store.name,
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            close_type=close_type,
            close_label=CLOSE_LABELS[close_type],
            close_date=now.date(),
            expected_amount=expected,
            cash_amount=counted,
            difference=to_decimal(counted - expected),
            notes=notes or '',
            sales_count=summary['sales_count'],
            total_sales=summary['total_sales'],
            cash_sales=breakdown['cash'],
            card_sales=breakdown['card'],
            transfer_sales=breakdown['transfer'],
            card_commission=summary['card_commission'],
            created_at=now,
        )
        db.session.add(cash_close)
        db.session.commit()

        logger.info(f"Cash close {close_type} for store {store.id}: expected {expected}, "
                    f"counted {counted}, difference {cash_close.difference}")
        return cash_close

    @staticmethod
    def completed_types(store_id, day) -> List[str]:
        return sorted({c.close_type for c in datastore.get_cash_closes_for_day(store_id, day)})

    @staticmethod
    def pending_close_alerts(store_id, now: Optional[datetime] = None) -> List[Dict]:
        """Scheduled closes more than the grace period overdue with no close of that type today"""
        now = now or datetime.now()
        grace = timedelta(minutes=config_value('CASH_CLOSE_GRACE_MINUTES', 30))
        done = set(CashCloseService.completed_types(store_id, now.date()))

        alerts = []
        for close_type, hour in sorted(CashCloseService.schedule().items(), key=lambda kv: kv[1]):
            scheduled_at = now.replace(hour=hour, minute=0, second=0, microsecond=0)
            if now > scheduled_at + grace and close_type not in done:
                alerts.append({
                    'id': f'pending-{close_type}',
                    'type': 'pending_close',
                    'close_type': close_type,
                    'title': CLOSE_LABELS[close_type],
                    'message': f'{CLOSE_LABELS[close_type]} pending since {hour:02d}:00',
                })
        return alerts

    @staticmethod
    def cash_limit_alert(store_id, now: Optional[datetime] = None) -> Optional[Dict]:
        now = now or datetime.now()
        limit = to_decimal(config_value('CASH_LIMIT', 2000))
        expected = CashCloseService.compute_expected_cash(store_id, now.date())
        if expected >= limit:
            return {
                'id': 'cash-limit',
                'type': 'cash_limit',
                'close_type': 'limit',
                'title': CLOSE_LABELS['limit'],
                'message': f'Cash in register reached the {limit:.2f} limit',
            }
        return None

    @staticmethod
    def get_alerts(store_id, now: Optional[datetime] = None, dismissed: Iterable[str] = ()) -> List[Dict]:
        """Active alerts minus the ones dismissed in this session"""
        alerts = CashCloseService.pending_close_alerts(store_id, now)
        limit_alert = CashCloseService.cash_limit_alert(store_id, now)
        if limit_alert:
            alerts.append(limit_alert)
        dismissed = set(dismissed or ())
        return [a for a in alerts if a['id'] not in dismissed]

    @staticmethod
    def dismiss_alert(session_store, alert_id) -> List[str]:
        """Remember a dismissal in the user's session only"""
        dismissed = list(session_store.get(DISMISSED_ALERTS_KEY, []))
        if alert_id not in dismissed:
            dismissed.append(alert_id)
        session_store[DISMISSED_ALERTS_KEY] = dismissed
        return dismissed

    @staticmethod
    def history(store_id, days=7, now: Optional[datetime] = None) -> List[Dict]:
        """Closes of the last N days grouped by date, newest first"""
        grouped = {}
        for close in datastore.get_cash_close_history(store_id, days, now):
            grouped.setdefault(close.close_date, []).append(close)

        result = []
        for day in sorted(grouped, reverse=True):
            closes = grouped[day]
            result.append({
                'date': day.isoformat(),
                'closes': [c.to_dict() for c in closes],
                'total_counted': float(sum((to_decimal(c.cash_amount) for c in closes), Decimal('0.00'))),
                'total_difference': float(sum((to_decimal(c.difference) for c in closes), Decimal('0.00'))),
            })
        return result
