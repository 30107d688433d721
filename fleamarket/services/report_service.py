"""
Report Service
Read-only aggregation over historical sales:
- Admin dashboard and range reports (card commission and net sales visible)
- Seller summaries (card commission never included)
- Rows for CSV, Excel and PDF exports
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from fleamarket.services import datastore
from fleamarket.utils.formatting import to_decimal, period_range, format_datetime

logger = logging.getLogger(__name__)

PAYMENT_LABELS = {'cash': 'Efectivo', 'card': 'Tarjeta', 'transfer': 'Transferencia'}


class ReportService:
    """Service for sales reporting"""

    @staticmethod
    def summarize(sales, include_commission=False) -> Dict:
        """
        Totals over a list of sales; returned sales are left out.

        Card commission and net sales only appear with include_commission.
        """
        active = [s for s in sales if not s.is_returned]
        total = sum((to_decimal(s.total) for s in active), Decimal('0.00'))
        breakdown = {'cash': Decimal('0.00'), 'card': Decimal('0.00'), 'transfer': Decimal('0.00')}
        for sale in active:
            method = sale.payment_method if sale.payment_method in breakdown else 'cash'
            breakdown[method] += to_decimal(sale.total)

        count = len(active)
        summary = {
            'sales_count': count,
            'total_sales': float(total),
            'average_ticket': float(total / count) if count else 0.0,
            'returned_count': len(sales) - count,
            'apartado_income': float(sum((to_decimal(s.total) for s in active
                                          if s.sale_type.startswith('apartado_')), Decimal('0.00'))),
            'payment_breakdown': {k: float(v) for k, v in breakdown.items()},
        }
        if include_commission:
            commission = sum((to_decimal(s.card_commission) for s in active), Decimal('0.00'))
            summary['card_commission'] = float(commission)
            summary['net_sales'] = float(total - commission)
        return summary

    @staticmethod
    def seller_summary(store_id, now: Optional[datetime] = None) -> Dict:
        """Today's figures for the store screen"""
        now = now or datetime.now()
        sales = datastore.get_sales_for_day(store_id, now.date())
        summary = ReportService.summarize(sales, include_commission=False)
        start, end = period_range('day', now)
        summary['top_products'] = datastore.get_top_selling_products(start, end, store_id)
        return summary

    @staticmethod
    def store_comparison(start, end) -> List[Dict]:
        rows = []
        for store in datastore.get_stores():
            sales = datastore.get_sales_by_date_range(start, end, store.id)
            summary = ReportService.summarize(sales, include_commission=True)
            rows.append({
                'store_id': store.id,
                'store_name': store.name,
                'orders': summary['sales_count'],
                'total_sales': summary['total_sales'],
                'average_ticket': summary['average_ticket'],
                'card_commission': summary['card_commission'],
                'net_sales': summary['net_sales'],
            })
        rows.sort(key=lambda r: r['total_sales'], reverse=True)
        return rows

    @staticmethod
    def employee_ranking(start, end, store_id=None) -> List[Dict]:
        ranking = {}
        for sale in datastore.get_sales_by_date_range(start, end, store_id, include_returned=False):
            key = sale.user_id
            entry = ranking.setdefault(key, {
                'user_id': sale.user_id,
                'user_name': sale.user_name or 'Sin asignar',
                'orders': 0,
                'total_sales': Decimal('0.00'),
            })
            entry['orders'] += 1
            entry['total_sales'] += to_decimal(sale.total)

        rows = sorted(ranking.values(), key=lambda r: r['total_sales'], reverse=True)
        for row in rows:
            row['total_sales'] = float(row['total_sales'])
        return rows

    @staticmethod
    def daily_trend(start, end, store_id=None) -> List[Dict]:
        """One entry per calendar day in [start, end)"""
        days = OrderedDict()
        day = start.date()
        while datetime.combine(day, datetime.min.time()) < end:
            days[day] = {'date': day.isoformat(), 'orders': 0, 'total_sales': Decimal('0.00')}
            day += timedelta(days=1)

        for sale in datastore.get_sales_by_date_range(start, end, store_id, include_returned=False):
            entry = days.get(sale.created_at.date())
            if entry is not None:
                entry['orders'] += 1
                entry['total_sales'] += to_decimal(sale.total)

        result = list(days.values())
        for entry in result:
            entry['total_sales'] = float(entry['total_sales'])
        return result

    @staticmethod
    def day_type_comparison(start, end, store_id=None) -> Dict:
        result = {}
        for day_type in ('weekday', 'weekend'):
            sales = datastore.get_sales_by_day_type(day_type, start, end, store_id)
            result[day_type] = {
                'orders': len(sales),
                'total_sales': float(sum((to_decimal(s.total) for s in sales), Decimal('0.00'))),
            }
        return result

    @staticmethod
    def range_report(start, end, store_id=None) -> Dict:
        """Full admin report for a date range"""
        sales = datastore.get_sales_by_date_range(start, end, store_id)
        return {
            'start': start.isoformat(),
            'end': end.isoformat(),
            'store_id': store_id,
            'summary': ReportService.summarize(sales, include_commission=True),
            'stores': ReportService.store_comparison(start, end) if store_id is None else [],
            'employees': ReportService.employee_ranking(start, end, store_id),
            'categories': datastore.get_category_statistics(start, end, store_id),
            'top_products': datastore.get_top_selling_products(start, end, store_id, limit=10),
            'daily': ReportService.daily_trend(start, end, store_id),
            'day_types': ReportService.day_type_comparison(start, end, store_id),
        }

    @staticmethod
    def dashboard(period='day', now: Optional[datetime] = None) -> Dict:
        now = now or datetime.now()
        start, end = period_range(period, now)
        # include sales recorded up to the end of today
        end = max(end, datetime.combine(now.date() + timedelta(days=1), datetime.min.time()))
        report = ReportService.range_report(start, end)
        report['period'] = period
        return report

    @staticmethod
    def sales_rows(start, end, store_id=None, include_commission=True) -> List[Dict]:
        """Flat rows for exports"""
        rows = []
        for sale in datastore.get_sales_by_date_range(start, end, store_id):
            row = {
                'sale_number': sale.sale_number,
                'date': format_datetime(sale.created_at),
                'store': sale.store.name if sale.store else '',
                'seller': sale.user_name or '',
                'customer': sale.customer_name or '',
                'items': sum(item.quantity for item in sale.items),
                'subtotal': float(to_decimal(sale.subtotal)),
                'discount': float(to_decimal(sale.promo_discount) + to_decimal(sale.vip_discount)),
                'total': float(to_decimal(sale.total)),
                'payment_method': PAYMENT_LABELS.get(sale.payment_method, sale.payment_method),
                'status': 'Devuelta' if sale.is_returned else 'Normal',
            }
            if include_commission:
                row['card_commission'] = float(to_decimal(sale.card_commission))
            rows.append(row)
        return rows
