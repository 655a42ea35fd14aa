"""Indexing routes with SSE support."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from ...config import cfg_fingerprint
from ...indexing import IndexProgress
from ..models import IndexJob
from ..schemas import IndexJobResponse, IndexRequest
from ..services import Services, get_db, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/index")

FINISHED_STATUSES = ("completed", "failed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def index_job_task(job_id: int, services: Services) -> None:
    """Background task running one full rebuild and recording its outcome."""
    db = services.session_factory()
    try:
        job = db.query(IndexJob).filter(IndexJob.id == job_id).first()
        if not job:
            return

        job.status = "running"
        job.started_at = _utcnow()
        db.commit()

        def on_progress(event: IndexProgress) -> None:
            services.progress[job_id] = event.to_dict()

        try:
            stats = services.indexer().index_directory(Path(job.root), on_progress=on_progress)
        except Exception as e:
            logger.error(f"Index job {job_id} failed: {e}")
            job.status = "failed"
            job.error_message = str(e)
        else:
            job.status = "completed"
            job.files = stats.files
            job.chunks = stats.chunks
            job.indexed = stats.indexed
            job.failed = stats.failed
            job.duration_s = stats.duration_s
            job.error_message = None
            logger.info(f"Index job {job_id} completed with {stats.indexed} chunks")
        job.finished_at = _utcnow()
        db.commit()
    finally:
        db.close()


@router.post("", status_code=202, response_model=IndexJobResponse)
async def start_indexing(
    request: IndexRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
):
    """Start a full rebuild of the collection from a directory."""
    root = Path(request.root) if request.root else services.root
    if not root.exists():
        raise HTTPException(status_code=400, detail="Path does not exist")
    if not root.is_dir():
        raise HTTPException(status_code=400, detail="Path is not a directory")

    job = IndexJob(
        root=str(root),
        collection=services.store.collection_name,
        config_fingerprint=cfg_fingerprint(services.cfg),
        status="pending",
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    logger.info(f"Starting background index job {job.id} for {root}")
    background_tasks.add_task(index_job_task, job.id, services)
    return job


@router.get("/{job_id}", response_model=IndexJobResponse)
async def get_index_job(job_id: int, db: Session = Depends(get_db)):
    job = db.query(IndexJob).filter(IndexJob.id == job_id).first()
    if not job:
        raise HTTPException(status_code=404, detail="Index job not found")
    return job


@router.get("/{job_id}/progress")
async def index_progress(
    job_id: int,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
):
    """SSE endpoint for real-time indexing progress."""
    job = db.query(IndexJob).filter(IndexJob.id == job_id).first()
    if not job:
        raise HTTPException(status_code=404, detail="Index job not found")

    return EventSourceResponse(_progress_events(job_id, services))


def _job_snapshot(job_id: int, services: Services) -> dict:
    db = services.session_factory()
    try:
        job = db.query(IndexJob).filter(IndexJob.id == job_id).first()
        progress = services.progress.get(job_id, {})
        return {
            "job_id": job_id,
            "status": job.status if job else "failed",
            "processed": progress.get("processed", 0),
            "total": progress.get("total", 0),
            "file_path": progress.get("file_path", ""),
            "batch": progress.get("batch", 0),
            "indexed": job.indexed if job else 0,
            "failed": job.failed if job else 0,
            "error": job.error_message if job else "Index job not found",
        }
    finally:
        db.close()


async def _progress_events(job_id: int, services: Services):
    """Poll the job row once a second; each event's data is a JSON object."""
    while True:
        snapshot = _job_snapshot(job_id, services)
        yield {"event": "progress", "data": json.dumps(snapshot)}

        if snapshot["status"] in FINISHED_STATUSES:
            services.progress.pop(job_id, None)
            break

        await asyncio.sleep(1)
