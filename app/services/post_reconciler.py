import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Set

from app.exceptions import Conflict
from app.repos.posts_repo import GitHubPostsRepo
from app.repos.tree_cache import TreeEntry
from app.schemas.blog import PostSummary
from app.services.branch_workflow import BranchWorkflow
from app.services.frontmatter_codec import (
    as_tag_list,
    as_text,
    parse_front_matter,
    slug_from_path,
)
from app.settings import settings

logger = logging.getLogger(__name__)


class PostReconciler:
    def __init__(self, repo: GitHubPostsRepo, workflow: BranchWorkflow):
        self.repo = repo
        self.workflow = workflow

    async def list_posts(self) -> List[PostSummary]:
        refs = await self.workflow.list_cms_branches()
        self.repo.cache.retain_branches(branch for branch, _ in refs)
        published, branch_posts = await asyncio.gather(
            self.repo.list_main_posts(),
            self.repo.list_branch_posts(refs),
        )
        branch_slugs = {self.workflow.slug_for(branch) for branch, _ in refs}
        logger.debug(
            f"Reconciling {len(published)} published posts with {len(refs)} cms branches"
        )
        return reconcile(
            published,
            branch_posts,
            branch_slugs,
            draft_prefix=self.workflow.settings.DRAFT_PREFIX,
        )


def reconcile(
    published: Iterable[TreeEntry],
    branch_posts: Dict[str, Iterable[TreeEntry]],
    branch_slugs: Set[str],
    draft_prefix: str = settings.DRAFT_PREFIX,
) -> List[PostSummary]:
    """
    One listing out of main's posts and the posts living only on cms branches.

    Branches are walked in name order; the same unpublished path on two
    branches raises Conflict instead of picking one arbitrarily.
    """
    published_posts = [
        to_post_summary(entry, draft_prefix=draft_prefix) for entry in published
    ]
    published_paths = {post.path for post in published_posts}

    unpublished: Dict[str, PostSummary] = {}
    for branch in sorted(branch_posts):
        for entry in branch_posts[branch]:
            if entry.path in published_paths:
                continue
            seen = unpublished.get(entry.path)
            if seen is not None:
                raise Conflict(
                    f"{entry.path} exists on both {seen.branch} and {branch}",
                    operation="list_posts",
                    path=entry.path,
                    branch=branch,
                )
            unpublished[entry.path] = to_post_summary(
                entry, draft_prefix=draft_prefix, branch=branch
            )

    posts = published_posts + list(unpublished.values())
    for post in posts:
        post.editing = (
            post.branch_only
            or post.slug in branch_slugs
            or post.slug.removeprefix(draft_prefix) in branch_slugs
        )

    # Lexical, not calendar-aware: "" sorts last.
    posts.sort(key=lambda p: p.date, reverse=True)
    return posts


def to_post_summary(
    entry: TreeEntry,
    draft_prefix: str = settings.DRAFT_PREFIX,
    branch: Optional[str] = None,
) -> PostSummary:
    meta = parse_front_matter(entry.content).metadata
    slug = slug_from_path(entry.path)
    return PostSummary(
        path=entry.path,
        slug=slug,
        sha=entry.sha,
        title=as_text(meta.get("title")) or slug,
        date=as_text(meta.get("date")),
        tag=as_tag_list(meta.get("tag")),
        description=as_text(meta.get("description")),
        featured=meta.get("featured") is True,
        draft=entry.name.startswith(draft_prefix),
        branch_only=branch is not None,
        branch=branch,
    )
