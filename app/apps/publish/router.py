"""
Publish router
Endpoints that turn a content directory into published content
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.dependencies import get_db, get_toolkit
from app.apps.publish.exceptions import PublishError
from app.apps.publish.schemas import PublishResponse
from app.apps.publish.services.media_tools import MediaToolkit
from app.apps.publish.services.orchestrator import (
    PublishResult,
    publish_article,
    publish_gallery,
    resolve_content_path,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _log_request(request: Request) -> None:
    for name, value in request.headers.items():
        logger.debug(f"[Header] {name}: {value}")
    for name, value in request.query_params.items():
        logger.debug(f"[Query] {name}: {value}")


def _build_response(result: PublishResult, label: str) -> PublishResponse:
    return PublishResponse(
        success=True,
        content_id=result.content_id,
        status=result.status,
        message=f"{label} published with ID: {result.content_id}",
        media=result.media,
        rewritten_files=[str(path) for path in result.rewritten_files],
        stored_files=[str(path) for path in result.stored_files],
    )


@router.api_route("/publish", methods=["GET", "POST"], response_model=PublishResponse, status_code=status.HTTP_200_OK)
async def publish_article_endpoint(
    request: Request,
    path: Optional[str] = Query(None, description="Content directory; the raw body is used when absent"),
    status_flag: Optional[str] = Query(None, alias="status", description="'1' publishes, anything else keeps a draft"),
    session: AsyncSession = Depends(get_db),
    toolkit: MediaToolkit = Depends(get_toolkit),
):
    """
    Publish an article directory (metadata.txt, index.html, media/, thumbnail/, ...)
    """
    logger.info("Received publish request")
    _log_request(request)
    try:
        body = (await request.body()).decode("utf-8", errors="replace")
        content_path = resolve_content_path(path, body)
        result = await publish_article(session, toolkit, content_path, status_flag)
        return _build_response(result, "Article")
    except PublishError as e:
        logger.error(f"Publish failed ({e.status_code}) for path={path}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error publishing article: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error publishing article: {str(e)}"
        )


@router.api_route("/gallery", methods=["GET", "POST"], response_model=PublishResponse, status_code=status.HTTP_200_OK)
async def publish_gallery_endpoint(
    request: Request,
    path: Optional[str] = Query(None, description="Gallery directory; the raw body is used when absent"),
    status_flag: Optional[str] = Query(None, alias="status", description="'1' publishes, anything else keeps a draft"),
    session: AsyncSession = Depends(get_db),
    toolkit: MediaToolkit = Depends(get_toolkit),
):
    """
    Publish an image gallery directory (metadata.txt with 1=, 2=, ... and media/)
    """
    logger.info("Received gallery publish request")
    _log_request(request)
    try:
        body = (await request.body()).decode("utf-8", errors="replace")
        content_path = resolve_content_path(path, body)
        result = await publish_gallery(session, toolkit, content_path, status_flag)
        return _build_response(result, "Gallery")
    except PublishError as e:
        logger.error(f"Gallery publish failed ({e.status_code}) for path={path}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error publishing gallery: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error publishing gallery: {str(e)}"
        )
