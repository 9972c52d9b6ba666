import logging

from fastapi import APIRouter, Depends, HTTPException

from app import dependencies as deps
from app.exceptions import CMSError
from app.schemas.blog import BranchList, BranchRequest, BranchResult
from app.services.posts_service import PostsService
from app.utils import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/branches", response_model=BranchList)
async def list_branches(service: PostsService = Depends(deps.get_posts_service)):
    """All cms branches and the slugs they belong to."""
    try:
        return await service.list_branches()
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Listing branches failed: {e}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing branches: {e}")
        raise HTTPException(status_code=500, detail="Failed to list branches")


@router.post("/branches", response_model=BranchResult)
async def get_or_create_branch(
    request: BranchRequest,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return await service.get_or_create_branch(request.slug)
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Branch for {request.slug} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error creating branch for {request.slug}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create branch")
