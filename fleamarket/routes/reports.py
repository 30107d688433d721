"""
Report Routes
Admin sales reports and CSV / Excel / PDF exports
"""

from datetime import datetime, timedelta
from flask import Blueprint, request, jsonify, send_file, current_app
from fleamarket.services import datastore
from fleamarket.services.report_service import ReportService
from fleamarket.utils.export import export_sales_report
from fleamarket.utils.formatting import parse_date, format_date
from fleamarket.utils.pdf_utils import generate_sales_report_pdf
from fleamarket.utils.permissions import admin_required

bp = Blueprint('reports', __name__)


def _date_range():
    """start/end query params (YYYY-MM-DD, inclusive); defaults to the last 30 days"""
    today = datetime.now().date()
    start_date = parse_date(request.args.get('start')) or today - timedelta(days=29)
    end_date = parse_date(request.args.get('end')) or today
    if end_date < start_date:
        raise ValueError('end must not be before start')
    start = datetime.combine(start_date, datetime.min.time())
    end = datetime.combine(end_date + timedelta(days=1), datetime.min.time())
    return start, end


@bp.route('/')
@admin_required
def report():
    """Full report for a date range, optionally for one store"""
    try:
        start, end = _date_range()
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    store_id = request.args.get('store_id', type=int)
    return jsonify(ReportService.range_report(start, end, store_id))


@bp.route('/stores')
@admin_required
def store_comparison():
    try:
        start, end = _date_range()
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    return jsonify({'stores': ReportService.store_comparison(start, end)})


@bp.route('/employees')
@admin_required
def employee_ranking():
    try:
        start, end = _date_range()
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    store_id = request.args.get('store_id', type=int)
    return jsonify({'employees': ReportService.employee_ranking(start, end, store_id)})


@bp.route('/categories')
@admin_required
def category_stats():
    try:
        start, end = _date_range()
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    store_id = request.args.get('store_id', type=int)
    return jsonify({'categories': datastore.get_category_statistics(start, end, store_id)})


@bp.route('/export')
@admin_required
def export():
    """Download sales as csv, excel or pdf"""
    fmt = request.args.get('format', 'excel')
    if fmt not in ('csv', 'excel', 'pdf'):
        return jsonify({'success': False, 'error': 'format must be csv, excel or pdf'}), 400
    try:
        start, end = _date_range()
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    store_id = request.args.get('store_id', type=int)
    rows = ReportService.sales_rows(start, end, store_id, include_commission=True)
    stamp = start.strftime('%Y%m%d')
    subtitle = f"{format_date(start)} - {format_date(end - timedelta(days=1))}"
    if store_id:
        subtitle = f"{datastore.get_by_id('stores', store_id).name} | {subtitle}"

    try:
        if fmt == 'pdf':
            summary = ReportService.summarize(
                datastore.get_sales_by_date_range(start, end, store_id), include_commission=True
            )
            output = generate_sales_report_pdf(
                rows, summary, subtitle=subtitle,
                business_name=current_app.config.get('BUSINESS_NAME', 'Flea Market')
            )
            return send_file(output, mimetype='application/pdf', as_attachment=True,
                             download_name=f"ventas_{stamp}.pdf")

        output = export_sales_report(rows, fmt, include_commission=True)
        if fmt == 'csv':
            return send_file(output, mimetype='text/csv', as_attachment=True,
                             download_name=f"ventas_{stamp}.csv")
        return send_file(
            output,
            mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
            as_attachment=True,
            download_name=f"ventas_{stamp}.xlsx"
        )
    except Exception as e:
        current_app.logger.error(f"Error exporting sales ({fmt}): {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
