import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app import dependencies as deps
from app.exceptions import CMSError
from app.schemas.blog import (
    CreatePostRequest,
    PostDetail,
    PostSummary,
    PublishRequest,
    PublishResponse,
    RenamePostRequest,
    SavePostRequest,
    WriteResult,
)
from app.services.posts_service import PostsService
from app.utils import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/posts", response_model=List[PostSummary])
async def list_posts(service: PostsService = Depends(deps.get_posts_service)):
    """Published posts plus posts that only exist on cms branches."""
    try:
        return await service.list_posts()
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Listing posts failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing posts: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.post("/posts", response_model=WriteResult)
async def create_post(
    request: CreatePostRequest,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Create a post on its own cms branch."""
    try:
        return await service.create_post(request)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Creating post {request.slug} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error creating post {request.slug}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create post")


@router.get("/posts/{name}", response_model=PostDetail)
async def get_post(
    name: str,
    branch: Optional[str] = Query(None),
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return await service.get_post(name, branch)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Reading post {name} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error retrieving post {name}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve post")


@router.put("/posts/{name}", response_model=WriteResult)
async def save_post(
    name: str,
    request: SavePostRequest,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return await service.save_post(name, request)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Saving post {name} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error saving post {name}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save post")


@router.post("/posts/{name}/rename", response_model=WriteResult)
async def rename_post(
    name: str,
    request: RenamePostRequest,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Move a post to another file name, e.g. toggling its wip_ draft prefix."""
    try:
        return await service.rename_post(name, request)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Renaming post {name} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error renaming post {name}: {e}")
        raise HTTPException(status_code=500, detail="Failed to rename post")


@router.post("/posts/{name}/publish", response_model=PublishResponse)
async def publish_post(
    name: str,
    request: PublishRequest,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Merge the post's branch into main through a squash-merged pull request."""
    try:
        return await service.publish(request.branch, request.title)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Publishing {request.branch} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error publishing {request.branch}: {e}")
        raise HTTPException(status_code=500, detail="Failed to publish post")
