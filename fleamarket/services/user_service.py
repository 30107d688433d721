"""
User Service
Admin-only account creation with structured error codes, plus account maintenance
"""

import logging
from typing import Dict, Optional

from fleamarket.errors import CallableError, ValidationError
from fleamarket.models import db, User, Store
from fleamarket.services import datastore

logger = logging.getLogger(__name__)

VALID_ROLES = ('admin', 'seller')
VALID_SCHEDULES = ('weekday', 'weekend')
MIN_PASSWORD_LENGTH = 6


def normalize_role(role: Optional[str]) -> str:
    """cashier is the legacy name of the seller role"""
    role = (role or 'cashier').strip().lower()
    return 'seller' if role == 'cashier' else role


def parse_store_id(value) -> Optional[int]:
    """Store ids arrive as ints or numeric strings; blank means unassigned"""
    if value is None or value == '':
        return None
    return int(value)


class UserService:
    """Service for user administration"""

    @staticmethod
    def create_user(caller, data: Dict) -> Dict:
        """
        Create a staff account.

        Args:
            caller: The authenticated user making the call (or None)
            data: email, password, name, role, type, store_id, pin

        Returns:
            {'success': True, 'uid': id, 'message': ...}

        Raises:
            CallableError with code unauthenticated, permission-denied,
            invalid-argument, already-exists or internal
        """
        if caller is None or not getattr(caller, 'is_authenticated', False):
            raise CallableError('unauthenticated', 'The function must be called while authenticated.')
        if not caller.is_admin:
            raise CallableError('permission-denied', 'Only administrators can create new users.')

        email = (data.get('email') or '').strip().lower()
        password = data.get('password') or ''
        name = (data.get('name') or '').strip()
        if not email or not password or not name:
            raise CallableError('invalid-argument', 'Email, password, and name are required.')
        if len(password) < MIN_PASSWORD_LENGTH:
            raise CallableError('invalid-argument',
                                f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')

        role = normalize_role(data.get('role'))
        if role not in VALID_ROLES:
            raise CallableError('invalid-argument', f'Invalid role: {role}')
        schedule_type = data.get('type') or 'weekday'
        if schedule_type not in VALID_SCHEDULES:
            raise CallableError('invalid-argument', f'Invalid schedule type: {schedule_type}')

        try:
            store_id = parse_store_id(data.get('store_id'))
        except (TypeError, ValueError):
            raise CallableError('invalid-argument', f"Invalid store id: {data.get('store_id')}")
        if store_id is not None and db.session.get(Store, store_id) is None:
            raise CallableError('invalid-argument', f'Store {store_id} does not exist.')

        if datastore.get_user_by_email(email):
            raise CallableError('already-exists', 'El correo electrónico ya está registrado.')

        try:
            user = User(
                email=email,
                name=name,
                role=role,
                schedule_type=schedule_type,
                store_id=store_id,
                pin=data.get('pin') or None,
                is_active=True,
                created_by=caller.id,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating user {email}: {e}")
            raise CallableError('internal', str(e))

        logger.info(f"User {email} ({role}) created by {caller.email}")
        return {'success': True, 'uid': user.id, 'message': 'User created successfully'}

    @staticmethod
    def update_user(user: User, data: Dict) -> User:
        """Update profile fields; email and password are not editable here"""
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise ValidationError('Name cannot be empty')
            user.name = name
        if 'role' in data:
            role = normalize_role(data.get('role'))
            if role not in VALID_ROLES:
                raise ValidationError(f'Invalid role: {role}')
            user.role = role
        if 'type' in data:
            if data['type'] not in VALID_SCHEDULES:
                raise ValidationError(f"Invalid schedule type: {data['type']}")
            user.schedule_type = data['type']
        if 'store_id' in data:
            try:
                store_id = parse_store_id(data.get('store_id'))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid store id: {data.get('store_id')}")
            if store_id is not None and db.session.get(Store, store_id) is None:
                raise ValidationError(f'Store {store_id} does not exist')
            user.store_id = store_id
        if 'pin' in data:
            user.pin = data.get('pin') or None
        db.session.commit()
        return user

    @staticmethod
    def toggle_status(user: User, acting_user=None) -> User:
        """Enable or disable an account; admins cannot disable themselves"""
        if acting_user is not None and acting_user.id == user.id:
            raise ValidationError('You cannot disable your own account')
        user.is_active = not user.is_active
        db.session.commit()
        logger.info(f"User {user.email} {'enabled' if user.is_active else 'disabled'}")
        return user
