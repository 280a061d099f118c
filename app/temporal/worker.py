"""Temporal worker for the analysis pipeline.

This worker:
- Connects to the Temporal server from settings (with retries)
- Discovers and registers all shared workflows and activities
- Runs one worker per task queue
- Serves a small health-check app next to the workers

Run with ``python -m app.temporal.worker``.
"""

import asyncio
import os

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner, SandboxRestrictions

from app.core.config import settings
from app.core.database import close_database
from app.temporal.core.activity_registry import ActivityRegistry
from app.temporal.core.discovery import discover_all
from app.temporal.core.workflow_registry import WorkflowRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 5
CONNECT_RETRY_DELAY = 5

app = FastAPI(title="Analysis Worker Health Check")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "analysis-worker"}


async def run_health_check_server():
    """Run the health check server."""
    port = int(os.getenv("WORKER_HEALTH_PORT", 8001))
    logger.info(f"Starting health check server on port {port}")
    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    await uvicorn.Server(config).serve()


async def connect_client() -> Client:
    """Connect to Temporal, retrying while the server comes up."""
    target = f"{settings.temporal_host}:{settings.temporal_port}"
    for attempt in range(CONNECT_ATTEMPTS):
        try:
            logger.info(f"Connecting to Temporal server at {target} (Attempt {attempt + 1}/{CONNECT_ATTEMPTS})")
            return await Client.connect(target, namespace=settings.temporal_namespace)
        except Exception as e:
            if attempt == CONNECT_ATTEMPTS - 1:
                logger.error(f"Failed to connect to Temporal server after {CONNECT_ATTEMPTS} attempts: {e}")
                raise
            logger.warning(f"Connection attempt {attempt + 1} failed: {e}. Retrying in {CONNECT_RETRY_DELAY}s...")
            await asyncio.sleep(CONNECT_RETRY_DELAY)


def build_workers(client: Client) -> list[Worker]:
    """One worker per task queue, each serving every registered activity."""
    discover_all()
    all_workflows = WorkflowRegistry.get_all_workflows()
    activities = list(ActivityRegistry.get_all_activities().values())
    logger.info(f"Registered {len(all_workflows)} workflows and {len(activities)} activities")

    queues = {metadata.task_queue for metadata in all_workflows.values()}
    return [
        Worker(
            client,
            task_queue=queue_name,
            workflows=WorkflowRegistry.get_by_queue(queue_name),
            activities=activities,
            max_concurrent_activities=10,
            max_concurrent_workflow_tasks=20,
            workflow_runner=SandboxedWorkflowRunner(
                restrictions=SandboxRestrictions.default.with_passthrough_all_modules()
            ),
        )
        for queue_name in sorted(queues)
    ]


async def run_workers():
    """Connect to Temporal and run workers until cancelled."""
    client = await connect_client()
    workers = build_workers(client)
    logger.info(f"Started {len(workers)} workers, polling for tasks...")
    try:
        await asyncio.gather(*(worker.run() for worker in workers))
    finally:
        await close_database()


async def main():
    """Start the Temporal worker(s)."""
    await asyncio.gather(run_health_check_server(), run_workers())


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Workers stopped by user")
