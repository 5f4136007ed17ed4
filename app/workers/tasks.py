from typing import Dict, Any, Optional
import logging

from app import models  # noqa: F401
from app.core.config import settings
from app.infrastructure.database import SessionLocal
from app.domain.billing.service import BedChargeService
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def post_daily_bed_charges(self, admission_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Post today's bed-day charge for every active admission.

    Returns run totals plus one {admission_id, posted, amount} entry per
    admission so a scheduled run can be audited from its result.
    """
    db = SessionLocal()
    try:
        results = BedChargeService(db).post_daily_charges(
            processed_by=settings.SYSTEM_ACTOR_ID,
            admission_id=admission_id
        )
    except Exception:
        logger.exception("Daily bed charge run failed")
        raise
    finally:
        db.close()
    
    for result in results:
        logger.info(
            "Bed charge admission=%s posted=%s amount=%s",
            result["admission_id"], result["posted"], result["amount"]
        )
    
    posted = [r for r in results if r["posted"]]
    total = sum((r["amount"] for r in posted), 0)
    logger.info(
        "Daily bed charge run: %d admissions, %d posted, total %s",
        len(results), len(posted), total
    )
    return {
        "admissions": len(results),
        "posted": len(posted),
        "total": float(total),
        "results": [
            {
                "admission_id": r["admission_id"],
                "posted": r["posted"],
                "amount": float(r["amount"]),
            }
            for r in results
        ],
    }
