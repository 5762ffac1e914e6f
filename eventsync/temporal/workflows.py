"""Temporal workflows - orchestration only, no business logic."""
from datetime import timedelta
from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from eventsync.temporal.activities import check_follow_ups, sync_calendar_sessions

PERIODIC_WORKFLOW_ID = "eventsync-periodic-reconcile"

ACTIVITY_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    maximum_interval=timedelta(minutes=5),
    maximum_attempts=3,
    backoff_coefficient=2.0
)


@workflow.defn
class PeriodicReconciliationWorkflow:
    """
    Temporal workflow for the pull-based reconciliation cycle.

    One workflow instance per deployment.

    Responsibilities:
    - Sync calendar sessions for every connected owner
    - Run the follow-up check
    - Sleep between cycles
    - Use continue_as_new() to avoid history bloat

    NO business logic, NO DB access, NO HTTP calls.
    """

    @workflow.run
    async def run(self, sync_interval_minutes: int = 15) -> None:
        """
        Run one reconciliation cycle, then continue as new.

        Args:
            sync_interval_minutes: Minutes between cycles
        """
        workflow.logger.info("Starting periodic reconciliation cycle")

        try:
            calendar_results = await workflow.execute_activity(
                sync_calendar_sessions,
                start_to_close_timeout=timedelta(minutes=10),
                retry_policy=ACTIVITY_RETRY_POLICY
            )
            workflow.logger.info(f"Calendar sync completed: {calendar_results}")
        except Exception as e:
            workflow.logger.error(f"Calendar sync failed: {str(e)}")

        try:
            follow_up_results = await workflow.execute_activity(
                check_follow_ups,
                start_to_close_timeout=timedelta(minutes=5),
                retry_policy=ACTIVITY_RETRY_POLICY
            )
            workflow.logger.info(f"Follow-up check completed: {follow_up_results}")
        except Exception as e:
            workflow.logger.error(f"Follow-up check failed: {str(e)}")

        await workflow.sleep(timedelta(minutes=sync_interval_minutes))

        workflow.continue_as_new(args=[sync_interval_minutes])
