"""
Permission Decorators
Role implies allowed routes: admins everywhere, sellers under /store
"""

from functools import wraps
from flask import flash, redirect, url_for, jsonify, request
from flask_login import current_user


def wants_json():
    """True for API-style requests that should get JSON errors"""
    if request.is_json:
        return True
    return request.accept_mimetypes.best == 'application/json'


def _login_redirect():
    if wants_json():
        return jsonify({'error': 'Authentication required'}), 401
    flash('Please log in to access this page.', 'warning')
    return redirect(url_for('auth.login', next=request.path))


def role_required(*role_names):
    """
    Decorator to require one of the given roles for a route.
    A role mismatch sends the user back to their own home.

    Usage:
        @role_required('admin', 'seller')
        def checkout():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return _login_redirect()

            if not current_user.has_role(*role_names):
                if wants_json():
                    return jsonify({'error': f"Role {' or '.join(role_names)} required"}), 403
                flash('You do not have access to that page.', 'danger')
                return redirect(current_user.home_path)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """
    Decorator to require admin role
    Shortcut for @role_required('admin')
    """
    return role_required('admin')(f)


def store_staff_required(f):
    """Admins and sellers; the /store area"""
    return role_required('admin', 'seller')(f)
