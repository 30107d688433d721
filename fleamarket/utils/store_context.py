"""
Store Context Utilities

The store a request works on is resolved once per request and kept on
flask.g. Sellers are pinned to their assigned store; admins pick one with
a store_id query/body parameter, falling back to the last one they chose
in this session.
"""

from functools import wraps
from flask import g, session, request, jsonify
from flask_login import current_user

from fleamarket.models import db, Store

SESSION_STORE_KEY = 'selected_store_id'


def _requested_store_id():
    store_id = request.args.get('store_id', type=int)
    if store_id is None and request.is_json:
        body = request.get_json(silent=True) or {}
        if isinstance(body, dict) and body.get('store_id') is not None:
            try:
                store_id = int(body['store_id'])
            except (TypeError, ValueError):
                store_id = None
    return store_id


def get_current_store():
    """
    Resolve the store for the current request.

    Returns:
        Store or None
    """
    if not current_user.is_authenticated:
        return None

    if not current_user.is_admin:
        if current_user.store_id:
            return db.session.get(Store, current_user.store_id)
        return None

    store_id = _requested_store_id()
    if store_id is not None:
        session[SESSION_STORE_KEY] = store_id
    else:
        store_id = session.get(SESSION_STORE_KEY) or current_user.store_id
    if store_id is None:
        return None
    return db.session.get(Store, store_id)


def set_store_context():
    """
    Set store context in Flask's g object.
    Call this in before_request.
    """
    if current_user.is_authenticated:
        g.current_store = get_current_store()
    else:
        g.current_store = None


def store_required(f):
    """
    Decorator to ensure a store is selected; passes it as `store`.

    Usage:
        @store_required
        def my_view(store):
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store = getattr(g, 'current_store', None)
        if store is None:
            store = get_current_store()
        if store is None:
            if current_user.is_authenticated and current_user.is_admin:
                message = 'Select a store with store_id'
            else:
                message = 'No store assigned to this user'
            return jsonify({'success': False, 'error': message}), 400
        kwargs['store'] = store
        return f(*args, **kwargs)
    return decorated_function
