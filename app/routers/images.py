import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app import dependencies as deps
from app.exceptions import CMSError
from app.repos.posts_repo import GitHubPostsRepo
from app.schemas.blog import ImageUploadResult
from app.services.image_service import upload_image
from app.utils import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/images", response_model=ImageUploadResult)
async def post_image(
    file: UploadFile = File(...),
    slug: str = Form(...),
    branch: Optional[str] = Form(None),
    repo: GitHubPostsRepo = Depends(deps.get_posts_repo),
):
    """
    Upload an image into posts/<slug>/ on main, or on the post's branch
    when one is given.
    """
    try:
        data = await file.read()
        return await upload_image(
            repo, slug, file.filename or "", data, branch=branch or None
        )
    except HTTPException:
        raise
    except CMSError as e:
        logger.warning(f"Image upload for {slug} failed: {e} {e.context()}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error uploading image for {slug}: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload image")
