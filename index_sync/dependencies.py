"""FastAPI dependencies for clients created in the application lifespan."""

from arq.connections import ArqRedis
from fastapi import Request

from .services.index_writer import IndexWriter
from .services.retry_queue import RetryQueue


def get_arq_pool(request: Request) -> ArqRedis:
    """arq Redis pool used to enqueue jobs."""
    return request.app.state.arq_pool


def get_retry_queue(request: Request) -> RetryQueue:
    return request.app.state.retry_queue


def get_index_writer(request: Request) -> IndexWriter:
    return request.app.state.index_writer
