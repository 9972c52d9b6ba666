import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from app.exceptions import remote_errors
from app.repos.tree_cache import TreeCache, TreeEntry
from app.settings import Settings, settings

logger = logging.getLogger(__name__)


class GitHubPostsRepo:
    def __init__(self, client, cache: TreeCache, settings_obj: Settings = settings):
        self.client = client
        self.cache = cache
        self.settings = settings_obj

    async def list_main_posts(self) -> List[TreeEntry]:
        with remote_errors("list_posts", branch=self.settings.MAIN_BRANCH):
            snapshot = await self.cache.get_main_tree()
        return list(snapshot.entries)

    async def list_branch_posts(
        self, refs: Sequence[Tuple[str, str]]
    ) -> Dict[str, List[TreeEntry]]:
        """Post files of each (branch, tip_sha), fetched concurrently."""

        async def _one(branch: str, tip_sha: str) -> List[TreeEntry]:
            with remote_errors("list_posts", branch=branch):
                snapshot = await self.cache.get_branch_tree(branch, tip_sha)
            return list(snapshot.entries)

        results = await asyncio.gather(*(_one(b, sha) for b, sha in refs))
        return {branch: entries for (branch, _), entries in zip(refs, results)}

    async def get_post(self, path: str, branch: Optional[str] = None) -> Dict[str, str]:
        cached = self.cache.lookup(path, branch)
        if cached:
            return {"content": cached.content, "sha": cached.sha}

        with remote_errors("get_post", path=path, branch=branch):
            return await self.client.get_contents(path, ref=branch)

    async def save_post(
        self,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> Dict[str, str]:
        with remote_errors("save_post", path=path, branch=branch, write=True):
            result = await self.client.put_contents(
                path, content, message, sha=sha, branch=branch
            )
        self._invalidate(branch)
        logger.info(f"Saved {path} on {branch or self.settings.MAIN_BRANCH}")
        return result

    async def upload_file(
        self, path: str, data: bytes, message: str, branch: Optional[str] = None
    ) -> Dict[str, str]:
        with remote_errors("upload_file", path=path, branch=branch, write=True):
            result = await self.client.put_contents(path, data, message, branch=branch)
        self._invalidate(branch)
        return result

    async def delete_post(
        self, path: str, sha: str, message: str, branch: Optional[str] = None
    ) -> None:
        with remote_errors("delete_post", path=path, branch=branch, write=True):
            await self.client.delete_contents(path, sha, message, branch=branch)
        self._invalidate(branch)
        logger.info(f"Deleted {path} on {branch or self.settings.MAIN_BRANCH}")

    def _invalidate(self, branch: Optional[str]) -> None:
        if branch:
            self.cache.invalidate_branch(branch)
        self.cache.invalidate_main()
