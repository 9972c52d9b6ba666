import base64
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from app.exceptions import RemoteError
from app.settings import Settings, settings

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Thin async wrapper over the GitHub REST endpoints the CMS needs.
    One method, one request. Non-success statuses raise RemoteError,
    except get_ref (404 -> None) and delete_ref (422 -> already gone).
    """

    def __init__(
        self,
        settings_obj: Settings = settings,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.settings = settings_obj
        self.http = http_client or httpx.AsyncClient(
            base_url=settings_obj.repo_api_url,
            headers={
                "Authorization": f"token {settings_obj.GITHUB_TOKEN}",
                "Accept": "application/vnd.github.v3+json",
            },
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    # --- refs ---

    async def get_ref(self, branch: str) -> Optional[str]:
        """Return the tip commit sha of a branch, or None if it does not exist."""
        res = await self.http.get(f"/git/ref/heads/{branch}")
        if res.status_code == 404:
            return None
        _raise_for_status(res)
        return res.json()["object"]["sha"]

    async def create_ref(self, branch: str, sha: str) -> str:
        res = await self.http.post(
            "/git/refs", json={"ref": f"refs/heads/{branch}", "sha": sha}
        )
        _raise_for_status(res)
        return res.json()["object"]["sha"]

    async def delete_ref(self, branch: str) -> None:
        res = await self.http.delete(f"/git/refs/heads/{branch}")
        if res.status_code == 422:
            logger.debug(f"Ref heads/{branch} already deleted")
            return
        _raise_for_status(res)

    async def list_refs(self, prefix: str) -> List[Tuple[str, str]]:
        """List (branch, sha) for every branch whose name starts with prefix."""
        res = await self.http.get(f"/git/matching-refs/heads/{prefix}")
        _raise_for_status(res)
        return [
            (ref["ref"].removeprefix("refs/heads/"), ref["object"]["sha"])
            for ref in res.json()
        ]

    # --- trees & blobs ---

    async def get_tree(self, ref: str) -> Dict[str, Any]:
        res = await self.http.get(f"/git/trees/{ref}", params={"recursive": "1"})
        _raise_for_status(res)
        data = res.json()
        return {"sha": data["sha"], "entries": data.get("tree", [])}

    async def get_blob(self, sha: str) -> str:
        res = await self.http.get(f"/git/blobs/{sha}")
        _raise_for_status(res)
        return _decode(res.json()["content"])

    # --- contents ---

    async def get_contents(self, path: str, ref: Optional[str] = None) -> Dict[str, str]:
        params = {"ref": ref} if ref else None
        res = await self.http.get(f"/contents/{path}", params=params)
        _raise_for_status(res)
        data = res.json()
        return {"content": _decode(data["content"]), "sha": data["sha"]}

    async def put_contents(
        self,
        path: str,
        content: Union[str, bytes],
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> Dict[str, str]:
        payload = self._write_payload(message, branch)
        raw = content.encode("utf-8") if isinstance(content, str) else content
        payload["content"] = base64.b64encode(raw).decode("ascii")
        if sha:
            payload["sha"] = sha

        res = await self.http.put(f"/contents/{path}", json=payload)
        _raise_for_status(res)
        data = res.json()
        return {"sha": data["content"]["sha"], "commit_sha": data["commit"]["sha"]}

    async def delete_contents(
        self,
        path: str,
        sha: str,
        message: str,
        branch: Optional[str] = None,
    ) -> None:
        payload = self._write_payload(message, branch)
        payload["sha"] = sha
        res = await self.http.request("DELETE", f"/contents/{path}", json=payload)
        _raise_for_status(res)

    # --- pull requests ---

    async def create_pull(self, head: str, title: str, body: str = "") -> int:
        res = await self.http.post(
            "/pulls",
            json={
                "title": title,
                "body": body,
                "head": head,
                "base": self.settings.MAIN_BRANCH,
            },
        )
        _raise_for_status(res)
        return res.json()["number"]

    async def find_open_pull(self, head: str) -> Optional[int]:
        """Number of the open PR from head into main, if there is one."""
        res = await self.http.get(
            "/pulls",
            params={
                "head": f"{self.settings.GITHUB_OWNER}:{head}",
                "base": self.settings.MAIN_BRANCH,
                "state": "open",
            },
        )
        _raise_for_status(res)
        pulls = res.json()
        return pulls[0]["number"] if pulls else None

    async def merge_pull(self, number: int) -> Dict[str, Any]:
        res = await self.http.put(
            f"/pulls/{number}/merge", json={"merge_method": "squash"}
        )
        _raise_for_status(res)
        return res.json()

    def _write_payload(self, message: str, branch: Optional[str]) -> Dict[str, Any]:
        if not message:
            raise ValueError("A commit message is required for every write")
        payload: Dict[str, Any] = {"message": message}
        if branch:
            payload["branch"] = branch
        author = self.settings.commit_author
        if author:
            payload["committer"] = author
            payload["author"] = author
        return payload


def _raise_for_status(res: httpx.Response) -> None:
    if res.is_success:
        return
    raise RemoteError(res.status_code, res.text)


def _decode(encoded: str) -> str:
    return base64.b64decode(encoded).decode("utf-8")


def get_github(settings_obj: Settings = settings) -> GitHubClient:
    """
    Create a GitHub client for the configured repository.
    Called from the app lifespan to avoid import-time connections.
    """
    return GitHubClient(settings_obj)
