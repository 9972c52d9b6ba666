import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from app.settings import Settings, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeEntry:
    path: str
    content: str
    sha: str  # blob sha, doubles as the version token for the contents API

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class TreeSnapshot:
    """Every post file of one branch at one instant."""

    key: str  # tree sha for main, tip commit sha for cms branches
    entries: Tuple[TreeEntry, ...]
    fetched_at: float = field(compare=False)

    def find(self, path: str) -> Optional[TreeEntry]:
        return next((e for e in self.entries if e.path == path), None)


def is_post_path(path: str, posts_dir: str = settings.POSTS_DIR) -> bool:
    return (
        path.startswith(posts_dir)
        and path.endswith(".md")
        and "/" not in path[len(posts_dir) :]
    )


class TreeCache:
    """
    TTL-bounded snapshots of the post files on main and on each cms branch.

    Snapshots are replaced whole, never patched. Any write to a branch must
    be followed by invalidate_branch / invalidate_main. Two concurrent
    refreshes of the same slot may both hydrate; the last one stored wins and
    both hold the same content.
    """

    def __init__(
        self,
        client,
        settings_obj: Settings = settings,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.settings = settings_obj
        self.ttl = settings_obj.CACHE_TTL_SECONDS if ttl is None else ttl
        self.clock = clock
        self.main_snapshot: Optional[TreeSnapshot] = None
        self.branch_snapshots: Dict[str, TreeSnapshot] = {}

    async def get_main_tree(self) -> TreeSnapshot:
        tree = await self.client.get_tree(self.settings.MAIN_BRANCH)
        if self._is_fresh(self.main_snapshot, tree["sha"]):
            logger.debug("Main tree cache hit")
            return self.main_snapshot

        logger.debug(f"Main tree cache miss, hydrating tree {tree['sha']}")
        self.main_snapshot = await self._hydrate(tree["sha"], tree["entries"])
        return self.main_snapshot

    async def get_branch_tree(self, branch: str, tip_sha: str) -> TreeSnapshot:
        cached = self.branch_snapshots.get(branch)
        if self._is_fresh(cached, tip_sha):
            logger.debug(f"Branch tree cache hit for {branch}")
            return cached

        logger.debug(f"Branch tree cache miss for {branch} at {tip_sha}")
        tree = await self.client.get_tree(tip_sha)
        snapshot = await self._hydrate(tip_sha, tree["entries"])
        self.branch_snapshots[branch] = snapshot
        return snapshot

    def lookup(self, path: str, branch: Optional[str] = None) -> Optional[TreeEntry]:
        """Cached entry for path without touching the network (TTL still applies)."""
        if branch is None or branch == self.settings.MAIN_BRANCH:
            snapshot = self.main_snapshot
        else:
            snapshot = self.branch_snapshots.get(branch)
        if snapshot is None or self._expired(snapshot):
            return None
        return snapshot.find(path)

    def invalidate_main(self) -> None:
        if self.main_snapshot is not None:
            logger.info("Invalidated main tree cache")
        self.main_snapshot = None

    def invalidate_branch(self, branch: str) -> None:
        if branch == self.settings.MAIN_BRANCH:
            self.invalidate_main()
            return
        if self.branch_snapshots.pop(branch, None) is not None:
            logger.info(f"Invalidated tree cache for {branch}")

    def retain_branches(self, branches: Iterable[str]) -> None:
        """Drop snapshots of branches that no longer exist."""
        live = set(branches)
        for branch in [b for b in self.branch_snapshots if b not in live]:
            del self.branch_snapshots[branch]
            logger.debug(f"Dropped tree cache for deleted branch {branch}")

    def reset(self) -> None:
        self.main_snapshot = None
        self.branch_snapshots.clear()

    async def _hydrate(self, key: str, entries: Iterable[dict]) -> TreeSnapshot:
        posts = [
            e
            for e in entries
            if e.get("type") == "blob" and is_post_path(e["path"], self.settings.POSTS_DIR)
        ]
        contents: List[str] = await asyncio.gather(
            *(self.client.get_blob(e["sha"]) for e in posts)
        )
        hydrated = tuple(
            TreeEntry(path=e["path"], content=content, sha=e["sha"])
            for e, content in zip(posts, contents)
        )
        return TreeSnapshot(key=key, entries=hydrated, fetched_at=self.clock())

    def _is_fresh(self, snapshot: Optional[TreeSnapshot], key: str) -> bool:
        return (
            snapshot is not None
            and snapshot.key == key
            and not self._expired(snapshot)
        )

    def _expired(self, snapshot: TreeSnapshot) -> bool:
        return self.clock() - snapshot.fetched_at >= self.ttl
