# Background Scheduler for Price Tracking
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from tracker import run_tracking_cycle

logger = logging.getLogger(__name__)

JOB_ID = 'price_tracking_cycle'


def run_scheduled_cycle(app):
    """Timer entry point. A failed run is logged and the next one still fires."""
    with app.app_context():
        try:
            run_tracking_cycle()
        except Exception:
            logger.exception("Scheduled tracking cycle failed")


def init_scheduler(app):
    """Start the tracking timer for this app, once"""
    scheduler = app.extensions.get('scheduler')
    if scheduler is not None:
        return scheduler

    interval = int(app.config.get('TRACK_INTERVAL_MINUTES', 30))
    if interval < 1:
        raise ValueError(f"TRACK_INTERVAL_MINUTES must be at least 1, got {interval}")

    scheduler = BackgroundScheduler(timezone='UTC')
    scheduler.add_job(
        func=run_scheduled_cycle,
        args=[app],
        trigger='interval',
        minutes=interval,
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    app.extensions['scheduler'] = scheduler
    logger.info("Background scheduler started - tracking prices every %s minutes", interval)
    return scheduler


def shutdown_scheduler(app):
    """Shutdown the scheduler gracefully"""
    scheduler = app.extensions.pop('scheduler', None)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


def scheduler_status(app):
    scheduler = app.extensions.get('scheduler')
    if scheduler is None:
        return {'scheduler_running': False, 'jobs': []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger),
        })

    return {
        'scheduler_running': scheduler.running,
        'jobs': jobs,
    }
