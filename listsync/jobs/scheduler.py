from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from listsync.config.settings import settings
from listsync.services.network_monitor import NetworkMonitor
from listsync.utils.log import app_logger

PROBE_JOB_ID = "connectivity_probe"


def create_scheduler() -> BackgroundScheduler:
    # in-memory jobstore: the probe job holds a live monitor and is re-added on every start
    return BackgroundScheduler(job_defaults={'coalesce': True, 'max_instances': 1})


def start_scheduler(scheduler: BackgroundScheduler):
    if not scheduler.running:
        scheduler.start()
        app_logger.info("scheduler: started")


def shutdown_scheduler(scheduler: BackgroundScheduler):
    if scheduler.running:
        scheduler.shutdown(wait=True)
        app_logger.info("scheduler: shutdown")


def add_connectivity_probe_job(scheduler: BackgroundScheduler, monitor: NetworkMonitor,
                               seconds: Optional[int] = None):
    """Poll `monitor` every `seconds` so online/offline transitions reach subscribers.

    If a probe job already exists, this is a no-op.
    """
    if scheduler.get_job(PROBE_JOB_ID):
        app_logger.info(f"scheduler: probe job already exists {PROBE_JOB_ID}")
        return

    interval = seconds or settings.PROBE_INTERVAL
    scheduler.add_job(monitor.poll, 'interval', seconds=interval, id=PROBE_JOB_ID, replace_existing=False)
    app_logger.info(f"scheduler: added connectivity probe job every {interval}s")


def remove_connectivity_probe_job(scheduler: BackgroundScheduler):
    job = scheduler.get_job(PROBE_JOB_ID)
    if job:
        scheduler.remove_job(PROBE_JOB_ID)
        app_logger.info(f"scheduler: removed probe job {PROBE_JOB_ID}")
