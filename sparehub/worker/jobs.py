from __future__ import annotations

import logging

from celery import shared_task

from sparehub.core.config import settings
from sparehub.db.session import SessionLocal
from sparehub.services.lifecycle import build_lifecycle_service

logger = logging.getLogger(__name__)


@shared_task(name="requests.sweep_expired")
def sweep_expired_requests_job() -> dict:
    """
    Периодический sweep (celery beat, раз в час).
    Идемпотентен: повторный запуск ничего не меняет.
    """
    db = SessionLocal()
    try:
        service = build_lifecycle_service(db, settings)
        expired = service.sweep_expired_requests()
        logger.info("Request expiry sweep done: %s expired", expired)
        return {"ok": True, "expired": expired}
    except Exception as e:
        db.rollback()
        logger.exception("Request expiry sweep failed")
        return {"ok": False, "error": str(e)}
    finally:
        db.close()
