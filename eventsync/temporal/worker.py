"""Temporal worker - executes workflows and activities."""
import asyncio
import logging
from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.worker import Worker

from eventsync.core.config import settings
from eventsync.temporal.workflows import PERIODIC_WORKFLOW_ID, PeriodicReconciliationWorkflow
from eventsync.temporal.activities import check_follow_ups, sync_calendar_sessions

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


async def ensure_periodic_workflow(client: Client) -> None:
    """Start the periodic reconciliation workflow unless it is already running."""
    try:
        await client.start_workflow(
            PeriodicReconciliationWorkflow.run,
            args=[settings.sync_interval_minutes],
            id=PERIODIC_WORKFLOW_ID,
            task_queue=settings.temporal_task_queue
        )
        logger.info(f"Started workflow {PERIODIC_WORKFLOW_ID}")
    except WorkflowAlreadyStartedError:
        logger.info(f"Workflow {PERIODIC_WORKFLOW_ID} already running")


async def main():
    """Run Temporal worker."""
    logger.info(f"Connecting to Temporal server at {settings.temporal_host}")

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace
    )

    logger.info(f"Starting worker on task queue: {settings.temporal_task_queue}")

    worker = Worker(
        client,
        task_queue=settings.temporal_task_queue,
        workflows=[PeriodicReconciliationWorkflow],
        activities=[sync_calendar_sessions, check_follow_ups]
    )

    await ensure_periodic_workflow(client)

    logger.info("Worker started, waiting for tasks...")
    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
