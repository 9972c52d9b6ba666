from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import dependencies as deps
from app.exceptions import RemoteUnavailable, ValidationError
from app.routers import branches
from app.schemas.blog import BranchList, BranchResult
from tests.conftest import FakePostsService


def make_app(fake_service: FakePostsService):
    app = FastAPI()
    app.dependency_overrides[deps.get_posts_service] = lambda: fake_service
    app.include_router(branches.router)
    return app


def test_list_branches():
    service = FakePostsService(
        list_branches=BranchList(branches=["cms/a", "cms/b"], slugs=["a", "b"])
    )
    client = TestClient(make_app(service))

    res = client.get("/branches")

    assert res.status_code == 200
    assert res.json() == {"branches": ["cms/a", "cms/b"], "slugs": ["a", "b"]}


def test_get_or_create_branch():
    service = FakePostsService(
        get_or_create_branch=BranchResult(branch="cms/hello", sha="abc")
    )
    client = TestClient(make_app(service))

    res = client.post("/branches", json={"slug": "wip_hello"})

    assert res.status_code == 200
    assert res.json() == {"branch": "cms/hello", "sha": "abc"}
    assert service.calls == [("get_or_create_branch", "wip_hello")]


def test_get_or_create_branch_bad_slug_is_400():
    client = TestClient(
        make_app(FakePostsService(get_or_create_branch=ValidationError("Invalid slug")))
    )

    res = client.post("/branches", json={"slug": "bad slug"})

    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid slug"


def test_list_branches_remote_failure_is_502():
    client = TestClient(
        make_app(FakePostsService(list_branches=RemoteUnavailable("GitHub returned 503")))
    )

    res = client.get("/branches")

    assert res.status_code == 502
