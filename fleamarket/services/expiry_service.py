"""
Expiry Service
Optional scheduled sweep that expires overdue apartados and stale return tokens.
The on-read check in the apartado routes stays in place either way.
"""

import logging
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler

from fleamarket.models import db
from fleamarket.services import datastore
from fleamarket.services.apartado_service import ApartadoService
from fleamarket.services.return_service import ReturnService

logger = logging.getLogger(__name__)


class ExpiryService:
    """Background sweep for apartado due dates"""

    def __init__(self, app):
        self.app = app
        self.scheduler = None

    def sweep(self, now=None):
        """
        Expire overdue apartados in every store

        Returns:
            dict: store id -> number of apartados expired
        """
        now = now or datetime.now()
        results = {}
        try:
            with self.app.app_context():
                for store in datastore.get_stores():
                    expired = ApartadoService.check_expired(store.id, now)
                    if expired:
                        results[store.id] = len(expired)
                tokens = ReturnService.expire_tokens(now)
                logger.info(f"Expiry sweep done: {sum(results.values())} apartados, {tokens} tokens")
        except Exception as e:
            with self.app.app_context():
                db.session.rollback()
            logger.error(f"Error during expiry sweep: {e}")
        return results

    def start_scheduler(self):
        """Start background scheduler for the sweep"""
        if self.scheduler:
            logger.warning("Expiry scheduler already running")
            return

        if not self.app.config.get('APARTADO_SWEEP_ENABLED'):
            logger.info("Scheduled apartado expiry is disabled")
            return

        interval = self.app.config.get('APARTADO_SWEEP_INTERVAL_MINUTES', 60)
        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            func=self.sweep,
            trigger='interval',
            minutes=interval,
            id='apartado_expiry'
        )
        self.scheduler.start()
        logger.info(f"Expiry scheduler started. Sweep every {interval} minutes")

    def stop_scheduler(self):
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown()
            self.scheduler = None
            logger.info("Expiry scheduler stopped")
