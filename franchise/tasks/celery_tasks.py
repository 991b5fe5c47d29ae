"""
Regional Franchise Platform - Celery Tasks

Periodic triggers for the settlement engine. The tasks only call the
services; all scheduling lives in the beat configuration.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from celery import shared_task

from franchise.database import async_session_factory, engine
from franchise.services.notification_service import NotificationService, NotificationEvent
from franchise.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def previous_month_end(today: date) -> date:
    """Last day of the month before `today`."""
    return today.replace(day=1) - timedelta(days=1)


# ===========================================
# SETTLEMENT TASKS
# ===========================================

@shared_task(name='franchise.tasks.celery_tasks.generate_monthly_settlements_task')
def generate_monthly_settlements_task(period_end: Optional[str] = None) -> Dict[str, Any]:
    """
    Generate settlements for every licensee with pending revenue.

    period_end defaults to the last day of the previous month.
    """
    cutoff = date.fromisoformat(period_end) if period_end else previous_month_end(date.today())
    return run_async(_generate_monthly_settlements(cutoff))


async def _generate_monthly_settlements(cutoff: date) -> Dict[str, Any]:
    """Async implementation of the monthly settlement run."""
    try:
        async with async_session_factory() as db:
            service = SettlementService(db)
            report = await service.generate_all_pending_settlements(cutoff, actor="system")
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()

    failed = [r for r in report["results"] if not r["success"]]
    logger.info(
        f"Monthly settlements up to {cutoff}: {report['generated']} generated, {len(failed)} failed"
    )
    return {
        "period_end": cutoff.isoformat(),
        "generated": report["generated"],
        "failed": len(failed),
        "errors": [
            {"licensee_id": str(r["licensee_id"]), "error": r["error"]} for r in failed
        ],
    }


@shared_task(name='franchise.tasks.celery_tasks.check_overdue_settlements_task')
def check_overdue_settlements_task(days: Optional[int] = None) -> Dict[str, Any]:
    """Raise an alert for each PENDING settlement older than the threshold."""
    return run_async(_check_overdue_settlements(days))


async def _check_overdue_settlements(days: Optional[int]) -> Dict[str, Any]:
    """Async implementation of the overdue settlement check."""
    notifier = NotificationService()
    try:
        async with async_session_factory() as db:
            overdue = await SettlementService(db, notifier=notifier).get_overdue_settlements(days)
            events = [
                NotificationEvent(
                    name="settlement.overdue",
                    entity_id=str(s.id),
                    payload={
                        "licensee_id": str(s.licensee_id),
                        "licensee_share": str(s.licensee_share),
                        "generated_at": s.generated_at.isoformat(),
                    },
                )
                for s in overdue
            ]
    finally:
        await engine.dispose()

    alerts_sent = 0
    for event in events:
        if await notifier.dispatch(event):
            alerts_sent += 1

    logger.info(f"Overdue settlement check: {len(events)} overdue, {alerts_sent} alerts sent")
    return {"overdue": len(events), "alerts_sent": alerts_sent}
