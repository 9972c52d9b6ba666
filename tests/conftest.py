import hashlib

from app.exceptions import RemoteError
from app.settings import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "GITHUB_TOKEN": "token",
        "GITHUB_OWNER": "owner",
        "GITHUB_REPO": "blog",
        "SITE_URL": "https://blog.example.com",
        "POST_AUTHOR": "ted",
        "TWITTER_ID": "ted_tw",
        "GITHUB_ID": "ted_gh",
        "MAIL": "ted@example.com",
        "SITE_NAME": "Ted's blog",
        "TWITTER_SITE": "@ted",
        "CMS_API_KEY": "secret",
        "ALLOWED_EDITORS": "ted",
    }
    values.update(overrides)
    return Settings(**values)


def make_post(title="Hello", date="2024/01/01", body="Body text\n", **extra) -> str:
    lines = ["---", f"title: {title}", f"date: {date}"]
    lines += [f"{key}: {value}" for key, value in extra.items()]
    lines += ["---", "", body]
    return "\n".join(lines)


def blob_sha(content) -> str:
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha1(raw).hexdigest()[:12]


class FakeGitHub:
    """
    In-memory stand-in for GitHubClient.
    Branches hold whole file maps; every write makes a new commit sha and
    blob shas are content hashes, so stale version tokens are rejected the
    way GitHub rejects them.
    """

    def __init__(self, files: dict | None = None, main_branch: str = "main"):
        self.main_branch = main_branch
        self.blobs = {}
        self.branches = {}
        self.pulls = {}
        self.calls = []
        self.failures = {}
        self._commits = 0
        self._set_branch(main_branch, dict(files or {}))

    # --- helpers ---

    def _record(self, name, *args):
        self.calls.append((name, *args))
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def _set_branch(self, branch, files):
        self._commits += 1
        for content in files.values():
            self.blobs[blob_sha(content)] = content
        self.branches[branch] = {"commit": f"c{self._commits}", "files": files}

    def _files(self, ref):
        if ref in self.branches:
            return self.branches[ref]["files"]
        for state in self.branches.values():
            if state["commit"] == ref:
                return state["files"]
        raise RemoteError(404, "Not Found")

    def count(self, name) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def add_branch(self, branch, files):
        self._set_branch(branch, dict(files))

    # --- client API ---

    async def get_ref(self, branch):
        self._record("get_ref", branch)
        state = self.branches.get(branch)
        return state["commit"] if state else None

    async def create_ref(self, branch, sha):
        self._record("create_ref", branch, sha)
        if branch in self.branches:
            raise RemoteError(422, "Reference already exists")
        self._set_branch(branch, dict(self._files(sha)))
        self.branches[branch]["commit"] = sha
        return sha

    async def delete_ref(self, branch):
        self._record("delete_ref", branch)
        self.branches.pop(branch, None)

    async def list_refs(self, prefix):
        self._record("list_refs", prefix)
        return [
            (name, state["commit"])
            for name, state in self.branches.items()
            if name.startswith(prefix)
        ]

    async def get_tree(self, ref):
        self._record("get_tree", ref)
        files = self._files(ref)
        entries = [
            {"path": path, "sha": blob_sha(content), "size": len(content), "type": "blob"}
            for path, content in sorted(files.items())
        ]
        tree_sha = blob_sha("".join(f"{e['path']}:{e['sha']}" for e in entries))
        return {"sha": tree_sha, "entries": entries}

    async def get_blob(self, sha):
        self._record("get_blob", sha)
        return self.blobs[sha]

    async def get_contents(self, path, ref=None):
        self._record("get_contents", path, ref)
        files = self._files(ref or self.main_branch)
        if path not in files:
            raise RemoteError(404, "Not Found")
        return {"content": files[path], "sha": blob_sha(files[path])}

    async def put_contents(self, path, content, message, sha=None, branch=None):
        self._record("put_contents", path, message, sha, branch)
        target = branch or self.main_branch
        if target not in self.branches:
            raise RemoteError(404, "Branch not found")
        files = dict(self.branches[target]["files"])
        existing = files.get(path)
        if existing is not None and sha is None:
            raise RemoteError(422, '"sha" wasn\'t supplied.')
        if sha is not None and (existing is None or blob_sha(existing) != sha):
            raise RemoteError(409, f"{path} does not match {sha}")
        files[path] = content
        self._set_branch(target, files)
        return {"sha": blob_sha(content), "commit_sha": self.branches[target]["commit"]}

    async def delete_contents(self, path, sha, message, branch=None):
        self._record("delete_contents", path, message, sha, branch)
        target = branch or self.main_branch
        files = dict(self._files(target))
        if path not in files:
            raise RemoteError(404, "Not Found")
        if blob_sha(files[path]) != sha:
            raise RemoteError(409, f"{path} does not match {sha}")
        del files[path]
        self._set_branch(target, files)

    async def create_pull(self, head, title, body=""):
        self._record("create_pull", head, title)
        if head not in self.branches:
            raise RemoteError(422, "Validation Failed")
        number = len(self.pulls) + 1
        self.pulls[number] = {"head": head, "title": title, "merged": False}
        return number

    async def find_open_pull(self, head):
        self._record("find_open_pull", head)
        for number, pull in sorted(self.pulls.items()):
            if pull["head"] == head and not pull["merged"]:
                return number
        return None

    async def merge_pull(self, number):
        self._record("merge_pull", number)
        pull = self.pulls[number]
        self._set_branch(self.main_branch, dict(self.branches[pull["head"]]["files"]))
        pull["merged"] = True
        return {"merged": True, "sha": self.branches[self.main_branch]["commit"]}


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePostsService:
    """
    Minimal posts service stand-in for router tests.
    """

    def __init__(self, **returns):
        self.returns = returns
        self.calls = []

    def _answer(self, name, *args):
        self.calls.append((name, *args))
        value = self.returns.get(name)
        if isinstance(value, Exception):
            raise value
        return value

    async def list_posts(self):
        return self._answer("list_posts")

    async def get_post(self, name, branch=None):
        return self._answer("get_post", name, branch)

    async def create_post(self, request):
        return self._answer("create_post", request)

    async def save_post(self, name, request):
        return self._answer("save_post", name, request)

    async def rename_post(self, name, request):
        return self._answer("rename_post", name, request)

    async def publish(self, branch, title=None):
        return self._answer("publish", branch, title)

    async def list_branches(self):
        return self._answer("list_branches")

    async def get_or_create_branch(self, slug):
        return self._answer("get_or_create_branch", slug)
