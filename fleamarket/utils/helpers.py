"""
Helper Utilities
Number generators and small request helpers
"""

import random
import secrets
import string
from datetime import datetime

from flask import current_app


def config_value(key, default=None):
    """Read a business setting from the active app config"""
    return current_app.config.get(key, default)


def generate_sale_number(store_id, now=None):
    """
    Generate a sale number

    Format: V{store}-YYYYMMDD-XXXX where XXXX is the store's
    sequence for the day

    Returns:
        str: Sale number
    """
    from fleamarket.models import Sale

    now = now or datetime.now()
    prefix = f"V{int(store_id):03d}-{now.strftime('%Y%m%d')}-"

    latest = Sale.query.filter(Sale.sale_number.like(f"{prefix}%"))\
        .order_by(Sale.sale_number.desc()).first()
    if latest:
        try:
            new_num = int(latest.sale_number[-4:]) + 1
        except ValueError:
            new_num = 1
    else:
        new_num = 1
    return f"{prefix}{new_num:04d}"


def generate_client_number():
    """
    Generate an unused 5-digit client number (10000-99999)

    Returns:
        str: Client number
    """
    from fleamarket.models import Client

    for _ in range(50):
        candidate = str(random.randint(10000, 99999))
        if not Client.query.filter_by(client_number=candidate).first():
            return candidate
    raise RuntimeError("Could not allocate a free client number")


def generate_token_code():
    """Six random digits"""
    return ''.join(secrets.choice(string.digits) for _ in range(6))
