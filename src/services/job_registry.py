"""In-memory registry for asynchronous enhancement tickets."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from src.config import Settings, logger
from src.core.errors import JobCapacityError
from src.core.replicate import STATUS_FAILED, STATUS_QUEUED, STATUS_SUCCEEDED
from src.services.enhance_service import (
    ProcessingResult,
    UploadedImage,
    run_enhancement_pipeline,
)

DEFAULT_CAPACITY = 1000


@dataclass(slots=True)
class JobTicket:
    job_id: str
    status: str = STATUS_QUEUED
    created_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    result: Optional[ProcessingResult] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (STATUS_SUCCEEDED, STATUS_FAILED)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "jobId": self.job_id,
            "status": self.status,
        }
        if self.result is not None:
            payload["result"] = self.result.to_dict()
        return payload


class JobRegistry:
    """
    Tickets live only in process memory and are touched only from the
    event loop, so no locking is needed. The registry never holds more
    than `capacity` tickets: the oldest finished tickets make room for new
    ones, and when every slot belongs to a running job new tickets are
    refused.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._jobs: "OrderedDict[str, JobTicket]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._jobs)

    def create(self) -> JobTicket:
        """
        Register a new queued ticket.

        Raises:
            JobCapacityError: If all slots are held by unfinished jobs
        """
        self._evict(room_for=1)
        if len(self._jobs) >= self.capacity:
            logger.warning(
                f"Job registry full: {len(self._jobs)} tickets still running"
            )
            raise JobCapacityError(
                "Too many jobs in progress, try again later",
                details={"capacity": self.capacity},
            )

        ticket = JobTicket(job_id=uuid.uuid4().hex)
        self._jobs[ticket.job_id] = ticket
        logger.debug(f"Job ticket created: {ticket.job_id}")
        return ticket

    def get(self, job_id: str) -> Optional[JobTicket]:
        return self._jobs.get(job_id)

    def set_status(self, job_id: str, status: str) -> None:
        ticket = self._jobs.get(job_id)
        if ticket and not ticket.is_terminal:
            ticket.status = status

    def complete(self, job_id: str, result: ProcessingResult) -> None:
        ticket = self._jobs.get(job_id)
        if ticket is None:
            logger.warning(f"Result for unknown or evicted job ticket: {job_id}")
            return
        ticket.result = result
        ticket.status = STATUS_SUCCEEDED if result.success else STATUS_FAILED
        ticket.finished_at = time.time()

    def _evict(self, room_for: int = 0) -> None:
        limit = self.capacity - room_for
        if len(self._jobs) <= limit:
            return
        for job_id in [jid for jid, t in self._jobs.items() if t.is_terminal]:
            if len(self._jobs) <= limit:
                return
            del self._jobs[job_id]
            logger.debug(f"Evicted finished job ticket: {job_id}")


async def process_ticket(
    registry: JobRegistry,
    job_id: str,
    image: UploadedImage,
    settings: Settings,
    client: httpx.AsyncClient,
) -> None:
    """Background task that runs the pipeline for one ticket."""

    try:
        result = await run_enhancement_pipeline(
            image,
            settings,
            client,
            on_status=lambda status: registry.set_status(job_id, status),
        )
    except asyncio.CancelledError:
        registry.complete(
            job_id,
            ProcessingResult(
                success=False, status_code=500, error="Job cancelled"
            ),
        )
        logger.warning(f"Job ticket {job_id} cancelled")
        raise

    registry.complete(job_id, result)
    logger.info(
        f"Job ticket {job_id} finished: "
        f"{'succeeded' if result.success else 'failed'}"
    )
