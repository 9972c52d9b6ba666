import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from app.settings import Settings, settings

logger = logging.getLogger(__name__)

API_KEY_NAME = "X-CMS-Key"
EDITOR_HEADER_NAME = "X-CMS-Editor"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
editor_header = APIKeyHeader(name=EDITOR_HEADER_NAME, auto_error=False)


def get_settings() -> Settings:
    """Small wrapper to allow dependency overrides in tests."""
    return settings


def has_valid_key(api_key: Optional[str], current_settings: Settings) -> bool:
    # An unconfigured key locks everyone out.
    if not current_settings.CMS_API_KEY or not api_key:
        return False
    return hmac.compare_digest(api_key, current_settings.CMS_API_KEY)


def is_allowed_editor(editor: Optional[str], current_settings: Settings) -> bool:
    return bool(editor) and editor in current_settings.allowed_editors


def require_editor(
    api_key: Optional[str] = Security(api_key_header),
    editor: Optional[str] = Security(editor_header),
    current_settings: Settings = Depends(get_settings),
) -> str:
    if not has_valid_key(api_key, current_settings):
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    if not is_allowed_editor(editor, current_settings):
        logger.warning(f"Rejected editor {editor!r}")
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN,
            detail="Editor is not allowed",
        )
    return editor
