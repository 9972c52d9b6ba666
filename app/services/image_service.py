import logging
import re
from typing import Optional

from app.exceptions import ValidationError
from app.repos.posts_repo import GitHubPostsRepo
from app.schemas.blog import ImageUploadResult
from app.services.branch_workflow import validate_slug
from app.settings import Settings, settings

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


async def upload_image(
    repo: GitHubPostsRepo,
    slug: str,
    filename: str,
    data: bytes,
    branch: Optional[str] = None,
    settings_obj: Settings = settings,
) -> ImageUploadResult:
    """
    Store an image next to its post at posts/<slug>/<filename>.
    Returns the public URL the image will have once the site is built.
    """
    validate_slug(slug)
    safe_name = sanitize_filename(filename)
    if get_content_type_from_filename(safe_name) == "application/octet-stream":
        raise ValidationError(f"Unsupported image type: {safe_name}", path=safe_name)
    if not data:
        raise ValidationError("file is empty", path=safe_name)

    path = f"{settings_obj.POSTS_DIR}{slug}/{safe_name}"
    await repo.upload_file(path, data, f"Upload image: {safe_name}", branch=branch)
    logger.info(f"Uploaded {len(data)} bytes to {path}")

    url = f"{settings_obj.SITE_URL.rstrip('/')}/posts/{slug}/{safe_name}"
    return ImageUploadResult(url=url, path=path)


def sanitize_filename(filename: str) -> str:
    name = UNSAFE_FILENAME_CHARS.sub("_", filename or "")
    if not name.strip("._"):
        raise ValidationError("filename is required")
    return name


def get_content_type_from_filename(filename: str) -> str:
    """
    Determine content type from file extension
    """
    filename = filename.lower()
    if filename.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    elif filename.endswith(".png"):
        return "image/png"
    elif filename.endswith(".gif"):
        return "image/gif"
    elif filename.endswith(".svg"):
        return "image/svg+xml"
    elif filename.endswith(".webp"):
        return "image/webp"
    else:
        return "application/octet-stream"
