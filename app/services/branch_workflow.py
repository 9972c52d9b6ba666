import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from app.exceptions import (
    CMSError,
    RemoteError,
    RemoteUnavailable,
    ValidationError,
    remote_errors,
)
from app.repos.tree_cache import TreeCache
from app.settings import Settings, settings

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


@dataclass(frozen=True)
class PublishResult:
    pr_number: int
    merged: bool = True
    branch_deleted: bool = True


def validate_slug(slug: Optional[str]) -> str:
    if not slug:
        raise ValidationError("slug is required")
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "slug must be alphanumeric (hyphens and underscores allowed)"
        )
    return slug


class BranchWorkflow:
    """
    One working branch per post: ``cms/<base slug>`` forked from main.

    The draft prefix is stripped before naming the branch so a post keeps
    its branch when it moves between ``wip_<slug>.md`` and ``<slug>.md``.
    """

    def __init__(self, client, cache: TreeCache, settings_obj: Settings = settings):
        self.client = client
        self.cache = cache
        self.settings = settings_obj

    def base_slug(self, slug: str) -> str:
        return slug.removeprefix(self.settings.DRAFT_PREFIX)

    def branch_for(self, slug: str) -> str:
        return f"{self.settings.BRANCH_PREFIX}{self.base_slug(slug)}"

    def is_cms_branch(self, branch: str) -> bool:
        return branch.startswith(self.settings.BRANCH_PREFIX) and len(branch) > len(
            self.settings.BRANCH_PREFIX
        )

    def slug_for(self, branch: str) -> str:
        return branch.removeprefix(self.settings.BRANCH_PREFIX)

    async def get_or_create_branch(self, slug: str) -> Tuple[str, str]:
        """Return (branch, tip_sha), forking the branch from main when missing."""
        slug = validate_slug(slug)
        if not self.base_slug(slug):
            raise ValidationError(
                f"slug needs a name after {self.settings.DRAFT_PREFIX}",
                operation="get_or_create_branch",
            )
        branch = self.branch_for(slug)

        with remote_errors("get_or_create_branch", branch=branch):
            tip = await self.client.get_ref(branch)
            if tip:
                return branch, tip

            main_sha = await self.client.get_ref(self.settings.MAIN_BRANCH)
            if not main_sha:
                raise RemoteUnavailable(
                    f"{self.settings.MAIN_BRANCH} branch not found",
                    operation="get_or_create_branch",
                    branch=self.settings.MAIN_BRANCH,
                )

            try:
                tip = await self.client.create_ref(branch, main_sha)
            except RemoteError as e:
                # 422 "Reference already exists": another request won the race.
                if e.status != 422:
                    raise
                logger.warning(f"Branch {branch} already exists, reusing it")
                tip = await self.client.get_ref(branch)
                if not tip:
                    raise
                return branch, tip

        logger.info(f"Created branch {branch} at {main_sha}")
        return branch, tip

    async def list_cms_branches(self) -> List[Tuple[str, str]]:
        """(branch, tip_sha) for every cms branch, sorted by name."""
        with remote_errors("list_branches"):
            refs = await self.client.list_refs(self.settings.BRANCH_PREFIX)
        return sorted(
            (branch, sha) for branch, sha in refs if self.is_cms_branch(branch)
        )

    async def publish(self, branch: str, title: Optional[str] = None) -> PublishResult:
        """
        Open a PR from branch into main, squash-merge it, delete the branch.

        Nothing is rolled back. Once the merge succeeds the publish counts as
        done: a failed branch deletion is logged and reported through
        ``branch_deleted`` while the cache is invalidated either way.
        A PR left open by an earlier failed merge is reused.
        """
        if not branch or not self.is_cms_branch(branch):
            raise ValidationError(
                f"branch must start with {self.settings.BRANCH_PREFIX}",
                operation="publish",
                branch=branch,
            )
        pr_title = title or f"Publish: {branch}"

        with remote_errors("publish", branch=branch):
            pr_number = await self.client.find_open_pull(branch)
            if pr_number is None:
                pr_number = await self.client.create_pull(branch, pr_title)
            else:
                logger.info(f"Reusing open PR #{pr_number} for {branch}")
            await self.client.merge_pull(pr_number)
        logger.info(f"Merged PR #{pr_number} from {branch}")

        branch_deleted = True
        try:
            with remote_errors("delete_branch", branch=branch):
                await self.client.delete_ref(branch)
        except CMSError as e:
            branch_deleted = False
            logger.warning(f"PR #{pr_number} merged but {branch} was not deleted: {e}")
        finally:
            self.cache.invalidate_branch(branch)
            self.cache.invalidate_main()

        return PublishResult(pr_number=pr_number, branch_deleted=branch_deleted)
