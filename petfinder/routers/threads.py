"""
Community endpoints:
  GET  /api/threads                   — all threads, newest first
  POST /api/threads                   — start a thread
  GET  /api/threads/{id}              — a single thread
  POST /api/threads/{id}/like         — {"increment": bool}, floored at 0
  GET  /api/threads/{id}/comments     — comments, oldest first
  POST /api/threads/{id}/comments     — reply; bumps commentCount
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace

from petfinder.routers.deps import get_storage
from petfinder.schemas import (
    CommentCreate,
    CommentResponse,
    LikeRequest,
    ThreadCreate,
    ThreadResponse,
)
from petfinder.storage import RecordStore
from petfinder.telemetry import COMMENTS_CREATED_TOTAL, THREAD_LIKES_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("", response_model=list[ThreadResponse])
async def list_threads(storage: RecordStore = Depends(get_storage)):
    return await storage.get_all_threads()


@router.post("", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
async def create_thread(body: ThreadCreate, storage: RecordStore = Depends(get_storage)):
    with tracer.start_as_current_span("create_thread"):
        thread = await storage.create_thread(body.model_dump())
        logger.info("Thread %s created by user %s", thread.id, thread.user_id)
        return thread


@router.get("/{thread_id}", response_model=ThreadResponse)
async def get_thread(thread_id: int, storage: RecordStore = Depends(get_storage)):
    thread = await storage.get_thread_by_id(thread_id)
    if not thread:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


@router.post("/{thread_id}/like", response_model=ThreadResponse)
async def like_thread(
    thread_id: int,
    body: LikeRequest,
    storage: RecordStore = Depends(get_storage),
):
    """Like (increment=true) or unlike a thread. The count never drops below 0."""
    with tracer.start_as_current_span("like_thread"):
        thread = await storage.update_thread_like_count(thread_id, body.increment)
        if not thread:
            raise HTTPException(status_code=404, detail="Thread not found")
        THREAD_LIKES_TOTAL.labels(direction="up" if body.increment else "down").inc()
        return thread


@router.get("/{thread_id}/comments", response_model=list[CommentResponse])
async def list_comments(thread_id: int, storage: RecordStore = Depends(get_storage)):
    return await storage.get_comments_by_thread_id(thread_id)


@router.post(
    "/{thread_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    thread_id: int,
    body: CommentCreate,
    storage: RecordStore = Depends(get_storage),
):
    with tracer.start_as_current_span("create_comment") as span:
        span.set_attribute("thread.id", thread_id)
        if not await storage.get_thread_by_id(thread_id):
            raise HTTPException(status_code=404, detail="Thread not found")

        comment = await storage.create_comment({**body.model_dump(), "thread_id": thread_id})
        COMMENTS_CREATED_TOTAL.inc()
        return comment
