import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from app.db.github import get_github
from app.repos.tree_cache import TreeCache
from app.routers import branches, images, posts
from app.security import require_editor
from app.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Blog CMS API", description="Branch-based editing for a static blog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.github = get_github()
    app.state.tree_cache = TreeCache(app.state.github)
    logger.info(
        f"Serving {settings.GITHUB_OWNER}/{settings.GITHUB_REPO} "
        f"(main branch: {settings.MAIN_BRANCH})"
    )

    try:
        yield
    finally:
        app.state.tree_cache.reset()
        await app.state.github.aclose()
        logger.info("GitHub client closed")


app.router.lifespan_context = lifespan

app.include_router(posts.router, dependencies=[Depends(require_editor)])
app.include_router(branches.router, dependencies=[Depends(require_editor)])
app.include_router(images.router, dependencies=[Depends(require_editor)])


@app.get("/")
async def root():
    return {"message": "Blog CMS API is running"}
