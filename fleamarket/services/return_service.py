"""
Return Service
Admin super tokens and sale returns
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fleamarket.errors import ValidationError, InvalidTransition
from fleamarket.models import db, ReturnToken, Sale
from fleamarket.services import datastore
from fleamarket.utils.helpers import config_value, generate_token_code

logger = logging.getLogger(__name__)


class ReturnService:
    """Service for token-authorised returns"""

    @staticmethod
    def generate_super_token(admin, now: Optional[datetime] = None) -> ReturnToken:
        """Create a six-digit code valid for RETURN_TOKEN_MINUTES"""
        now = now or datetime.now()
        minutes = config_value('RETURN_TOKEN_MINUTES', 5)

        code = generate_token_code()
        while ReturnToken.query.filter_by(code=code, status='active').first():
            code = generate_token_code()

        token = ReturnToken(
            code=code,
            token_type='return',
            status='active',
            created_by=admin.id,
            created_by_name=admin.name,
            expires_at=now + timedelta(minutes=minutes),
            created_at=now,
        )
        db.session.add(token)
        db.session.commit()
        logger.info(f"Return token generated by {admin.email}, expires {token.expires_at}")
        return token

    @staticmethod
    def validate_and_use_token(code, user, now: Optional[datetime] = None) -> ReturnToken:
        """
        Consume an active, unexpired code.

        An expired code is marked expired and rejected.
        """
        now = now or datetime.now()
        if isinstance(code, int):
            # keypads send the code as a number, dropping leading zeros
            code = f"{code:06d}"
        code = str(code).strip() if code is not None else ''
        if not code:
            raise ValidationError('Authorization code is required')

        token = ReturnToken.query.filter_by(code=code, status='active')\
            .order_by(ReturnToken.created_at.desc()).first()
        if token is None:
            raise ValidationError('Invalid or already used authorization code')

        if token.expires_at < now:
            token.status = 'expired'
            db.session.commit()
            raise ValidationError('Authorization code has expired')

        token.status = 'used'
        token.used_by = user.id if user else None
        token.used_by_name = user.name if user else None
        token.used_at = now
        db.session.flush()
        return token

    @staticmethod
    def process_return(sale: Sale, code, user, now: Optional[datetime] = None) -> Sale:
        """Flip a sale to returned and restock its items"""
        now = now or datetime.now()
        if sale.is_returned:
            raise InvalidTransition(f'Sale {sale.sale_number} was already returned')
        if sale.sale_type != 'sale':
            raise InvalidTransition('Apartado payments cannot be returned')

        token = ReturnService.validate_and_use_token(code, user, now)
        token.sale_id = sale.id

        sale.status = 'returned'
        sale.returned_at = now
        sale.returned_by = user.id if user else None
        sale.returned_by_name = user.name if user else None
        sale.return_authorized_by = token.created_by
        sale.return_token = token.code

        for item in sale.items:
            if item.product_id:
                datastore.increment_stock(item.product_id, item.quantity, commit=False)

        db.session.commit()
        logger.info(f"Sale {sale.sale_number} returned, authorised by token {token.id}")
        return sale

    @staticmethod
    def expire_tokens(now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        stale = ReturnToken.query.filter(ReturnToken.status == 'active',
                                         ReturnToken.expires_at < now).all()
        for token in stale:
            token.status = 'expired'
        if stale:
            db.session.commit()
        return len(stale)
