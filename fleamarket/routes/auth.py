"""
Authentication Routes
Handles user login, logout and session logging
"""

from datetime import datetime
from urllib.parse import urlparse
from flask import Blueprint, redirect, request, jsonify, current_app, flash
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf
from fleamarket import limiter
from fleamarket.models import db, SessionLog
from fleamarket.services import datastore
from fleamarket.utils.permissions import wants_json

bp = Blueprint('auth', __name__)


def is_safe_redirect(target):
    """Only same-site relative paths; rejects //host and scheme urls"""
    if not target or not target.startswith('/'):
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and not target.startswith('/\\')


def _credentials():
    if request.is_json:
        data = request.get_json(silent=True) or {}
    else:
        data = request.form
    return (data.get('email') or '').strip(), data.get('password') or '', bool(data.get('remember', False))


@bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(lambda: current_app.config.get('LOGIN_RATE_LIMIT', '20 per minute'), methods=['POST'])
def login():
    """User login by email and password"""
    if request.method == 'GET':
        if current_user.is_authenticated:
            return redirect(current_user.home_path)
        return jsonify({'success': False, 'message': 'POST email and password to log in'}), 200

    email, password, remember = _credentials()
    user = datastore.get_user_by_email(email)

    if user is None or not user.check_password(password):
        log_session(user, 'failed', email=email, reason='invalid credentials')
        if wants_json():
            return jsonify({'success': False, 'error': 'Invalid email or password'}), 401
        flash('Invalid email or password', 'danger')
        return redirect('/login')

    if not user.is_active:
        log_session(user, 'failed', email=email, reason='account disabled')
        if wants_json():
            return jsonify({'success': False, 'error': 'Your account has been disabled'}), 403
        flash('Your account has been disabled. Please contact an administrator.', 'warning')
        return redirect('/login')

    login_user(user, remember=remember)
    user.last_login = datetime.now()
    db.session.commit()
    log_session(user, 'success')

    next_page = request.args.get('next')
    if not is_safe_redirect(next_page):
        next_page = user.home_path

    if wants_json():
        return jsonify({'success': True, 'user': user.to_dict(), 'redirect': next_page})
    return redirect(next_page)


@bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """User logout"""
    if current_user.is_authenticated:
        log_session(current_user, 'success', action='logout')
        logout_user()
    if wants_json():
        return jsonify({'success': True})
    return redirect('/login')


@bp.route('/me')
def me():
    """Current user, working store and a CSRF token for API clients"""
    if not current_user.is_authenticated:
        return jsonify({'authenticated': False, 'csrf_token': generate_csrf()}), 401

    from fleamarket.utils.store_context import get_current_store
    store = get_current_store()
    return jsonify({
        'authenticated': True,
        'user': current_user.to_dict(),
        'store': store.to_dict() if store else None,
        'home': current_user.home_path,
        'csrf_token': generate_csrf(),
    })


def log_session(user, status, email=None, reason=None, action='login'):
    """Persist a login/logout event"""
    try:
        log = SessionLog(
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            email=user.email if user else email,
            role=user.role if user else None,
            store_id=user.store_id if user else None,
            action=action,
            status=status,
            failure_reason=reason,
            ip_address=request.remote_addr if request else None,
            user_agent=str(request.user_agent)[:512] if request and request.user_agent else None
        )
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        # Don't fail the request if logging fails
        db.session.rollback()
        current_app.logger.error(f"Error writing session log: {e}")
