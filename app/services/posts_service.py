import logging
import re
from typing import List, Optional

from app.exceptions import CMSError, Conflict, ValidationError
from app.repos.posts_repo import GitHubPostsRepo
from app.schemas.blog import (
    BranchList,
    BranchResult,
    CreatePostRequest,
    PostDetail,
    PostSummary,
    PublishResponse,
    RenamePostRequest,
    SavePostRequest,
    WriteResult,
)
from app.services.branch_workflow import BranchWorkflow, validate_slug
from app.services.frontmatter_codec import (
    as_tag_list,
    as_text,
    generate_front_matter,
    parse_front_matter,
    slug_from_path,
)
from app.services.post_reconciler import PostReconciler

logger = logging.getLogger(__name__)

POST_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+\.md$")


class PostsService:
    def __init__(
        self,
        repo: GitHubPostsRepo,
        workflow: BranchWorkflow,
        reconciler: Optional[PostReconciler] = None,
    ):
        self.repo = repo
        self.workflow = workflow
        self.reconciler = reconciler or PostReconciler(repo, workflow)
        self.settings = workflow.settings

    async def list_posts(self) -> List[PostSummary]:
        return await self.reconciler.list_posts()

    async def get_post(self, name: str, branch: Optional[str] = None) -> PostDetail:
        path = self.post_path(name)
        stored = await self.repo.get_post(path, branch)
        parsed = parse_front_matter(stored["content"])
        meta = parsed.metadata

        return PostDetail(
            path=path,
            slug=slug_from_path(path),
            sha=stored["sha"],
            branch=branch,
            title=as_text(meta.get("title")),
            date=as_text(meta.get("date")),
            tag=as_tag_list(meta.get("tag")),
            description=as_text(meta.get("description")),
            ogp_url=as_text(meta.get("ogp_url")),
            featured=meta.get("featured") is True,
            body=parsed.content,
            meta=dict(meta),
        )

    async def create_post(self, request: CreatePostRequest) -> WriteResult:
        slug = validate_slug(request.slug)
        if not request.title:
            raise ValidationError("slug and title are required")

        stored_slug = f"{self.settings.DRAFT_PREFIX}{slug}" if request.draft else slug
        path = f"{self.settings.POSTS_DIR}{stored_slug}.md"
        markdown = generate_front_matter(
            request.meta(), request.content, self.workflow.base_slug(slug), self.settings
        )

        branch, _ = await self.workflow.get_or_create_branch(slug)
        result = await self.repo.save_post(
            path, markdown, f"Add post: {request.title}", branch=branch
        )
        return WriteResult(path=path, branch=branch, **result)

    async def save_post(self, name: str, request: SavePostRequest) -> WriteResult:
        """
        Write a post. Without a version token the file must be new and a
        branch is mandatory; with one, the token must match the stored file.
        """
        path = self.post_path(name)
        if not request.sha and not request.branch:
            raise ValidationError(
                "sha is required", operation="save_post", path=path
            )

        slug = slug_from_path(path)
        markdown = generate_front_matter(
            request.meta(), request.body, self.workflow.base_slug(slug), self.settings
        )
        verb = "Update" if request.sha else "Add"
        result = await self.repo.save_post(
            path,
            markdown,
            f"{verb} post: {request.title or slug}",
            sha=request.sha,
            branch=request.branch,
        )
        return WriteResult(path=path, branch=request.branch, **result)

    async def rename_post(self, name: str, request: RenamePostRequest) -> WriteResult:
        """
        Move a post to a new name on its branch: create the new file, then
        delete the old one. Not atomic. If the delete fails the old file is
        left behind next to the new one and the error says so.
        """
        old_path = self.post_path(name)
        new_path = self.post_path(request.new_name)
        if old_path == new_path:
            raise ValidationError("new name must differ", path=old_path)
        if not self.workflow.is_cms_branch(request.branch):
            raise ValidationError(
                f"branch must start with {self.settings.BRANCH_PREFIX}",
                operation="rename_post",
                branch=request.branch,
            )

        current = await self.repo.get_post(old_path, request.branch)
        if current["sha"] != request.sha:
            raise Conflict(
                f"{old_path} changed since it was loaded",
                operation="rename_post",
                path=old_path,
                branch=request.branch,
            )

        message = f"Rename {old_path} -> {new_path}"
        result = await self.repo.save_post(
            new_path, current["content"], message, branch=request.branch
        )
        try:
            await self.repo.delete_post(
                old_path, request.sha, message, branch=request.branch
            )
        except CMSError as e:
            logger.error(f"Renamed to {new_path} but {old_path} is still present: {e}")
            raise type(e)(
                f"Created {new_path} but could not delete {old_path}: {e.message}",
                operation="rename_post",
                path=old_path,
                branch=request.branch,
            ) from e

        return WriteResult(path=new_path, branch=request.branch, **result)

    async def get_or_create_branch(self, slug: str) -> BranchResult:
        branch, sha = await self.workflow.get_or_create_branch(slug)
        return BranchResult(branch=branch, sha=sha)

    async def list_branches(self) -> BranchList:
        refs = await self.workflow.list_cms_branches()
        branches = [branch for branch, _ in refs]
        return BranchList(
            branches=branches,
            slugs=[self.workflow.slug_for(branch) for branch in branches],
        )

    async def publish(self, branch: str, title: Optional[str] = None) -> PublishResponse:
        result = await self.workflow.publish(branch, title)
        return PublishResponse(
            merged=result.merged,
            pr_number=result.pr_number,
            branch_deleted=result.branch_deleted,
        )

    def post_path(self, name: str) -> str:
        if not name or not POST_NAME_PATTERN.match(name):
            raise ValidationError(
                "post name must look like <slug>.md (alphanumeric, hyphens, underscores)",
                path=name,
            )
        return f"{self.settings.POSTS_DIR}{name}"
