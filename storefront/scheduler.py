"""
Payment reconciliation loop.

Runs on a fixed interval and brings local payments in line with Stripe:

- payments pending for longer than ``stale_after`` are failed outright
- the oldest pending payments untouched for ``poll_after`` are polled

Both steps are idempotent, so overlapping runs (several workers, a manual
``flask sync-payments`` during a scheduled run) are harmless.
"""
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from .errors import PaymentNotFound, ProviderFailure
from .extensions import db
from .utils.clock import utcnow

logger = structlog.get_logger(component="payment_sync")


@dataclass(frozen=True)
class PaymentSyncConfig:
    enabled: bool = True
    interval_seconds: int = 300
    batch_size: int = 50
    stale_after: timedelta = timedelta(hours=24)
    poll_after: timedelta = timedelta(hours=1)

    @classmethod
    def from_mapping(cls, config) -> "PaymentSyncConfig":
        return cls(
            enabled=bool(config.get("PAYMENT_SYNC_ENABLED", True)),
            interval_seconds=int(config.get("PAYMENT_SYNC_INTERVAL_SECONDS", 300)),
            batch_size=int(config.get("PAYMENT_SYNC_BATCH_SIZE", 50)),
            stale_after=timedelta(hours=int(config.get("PAYMENT_STALE_AFTER_HOURS", 24))),
            poll_after=timedelta(minutes=int(config.get("PAYMENT_POLL_AFTER_MINUTES", 60))),
        )


@dataclass
class SyncReport:
    expired: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    def as_dict(self):
        return {
            "expired": self.expired,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


class PaymentSyncScheduler:
    def __init__(self, payment_service, config: PaymentSyncConfig):
        self.payments = payment_service
        self.config = config
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self, now: datetime | None = None) -> SyncReport:
        """One reconciliation pass. Never raises; problems end up in the log."""
        report = SyncReport()
        if not self.config.enabled:
            logger.debug("payment_sync_disabled")
            return report

        now = now or utcnow()
        logger.info("payment_sync_started")
        try:
            report.expired = self.payments.expire_stale_pending_payments(now, self.config.stale_after)

            batch = self.payments.find_oldest_pending_payments(now - self.config.poll_after, self.config.batch_size)
            if not batch:
                logger.debug("payment_sync_nothing_to_poll")
                return report
            # plain values only; each sync commits and expires the ORM objects
            candidates = [(p.id, p.transaction_id) for p in batch]
            logger.info("payment_sync_batch", size=len(candidates))

            for payment_id, intent_id in candidates:
                if not intent_id:
                    logger.warning("payment_sync_missing_transaction_id", payment_id=payment_id)
                    report.skipped += 1
                    continue
                self._sync_one(payment_id, intent_id, report)
        except Exception as e:
            db.session.rollback()
            logger.exception("payment_sync_aborted", error=str(e))
        finally:
            logger.info("payment_sync_finished", **report.as_dict())
        return report

    def _sync_one(self, payment_id, intent_id, report: SyncReport):
        try:
            self.payments.synchronize_payment_status(intent_id)
            report.succeeded += 1
        except PaymentNotFound as e:
            logger.warning("payment_sync_not_found", payment_id=payment_id, error=str(e))
            report.failed += 1
        except ProviderFailure as e:
            logger.error("payment_sync_provider_error", payment_id=payment_id, error=str(e))
            report.failed += 1
        except Exception as e:
            db.session.rollback()
            logger.exception("payment_sync_unexpected_error", payment_id=payment_id, error=str(e))
            report.failed += 1

    # ---- background thread ----------------------------------------------
    def start(self, app):
        if not self.config.enabled:
            logger.info("payment_sync_not_started", reason="disabled")
            return
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, args=(app,), name="payment-sync", daemon=True)
        self._thread.start()
        logger.info("payment_sync_scheduled", interval_seconds=self.config.interval_seconds)

    def stop(self, timeout: float | None = None):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self, app):
        while not self._stop.wait(self.config.interval_seconds):
            with app.app_context():
                try:
                    self.run_once()
                finally:
                    db.session.remove()
