import logging

from celery import shared_task

from .services import BreakInsertionEngine

logger = logging.getLogger(__name__)


@shared_task
def process_automatic_breaks(date=None):
    """
    Nightly automatic break run.

    Without a date each user gets the day that last ended in their own
    timezone, so users west of the server zone are not split mid-day.
    """
    engine = BreakInsertionEngine()
    if date:
        report = engine.insert_automatic_breaks(date)
    else:
        report = engine.insert_automatic_breaks(None, days_back=1)
    if report.failed:
        logger.warning("Automatic breaks for %s: %d users failed", date or 'previous day', len(report.failed))
    return {'date': date, **report.to_dict()}
