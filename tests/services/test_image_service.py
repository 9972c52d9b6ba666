import pytest

from app.exceptions import ValidationError
from app.repos.posts_repo import GitHubPostsRepo
from app.repos.tree_cache import TreeCache
from app.services import image_service
from tests.conftest import FakeClock, FakeGitHub, make_settings


def build_repo():
    github = FakeGitHub({})
    settings = make_settings()
    return github, GitHubPostsRepo(github, TreeCache(github, settings, clock=FakeClock()), settings)


@pytest.mark.asyncio
async def test_upload_image_stores_next_to_post_and_returns_public_url():
    github, repo = build_repo()

    result = await image_service.upload_image(
        repo, "hello", "my photo.PNG", b"DATA", settings_obj=make_settings()
    )

    assert result.path == "posts/hello/my_photo.PNG"
    assert result.url == "https://blog.example.com/posts/hello/my_photo.PNG"
    assert github.branches["main"]["files"]["posts/hello/my_photo.PNG"] == b"DATA"
    assert github.calls[-1][2] == "Upload image: my_photo.PNG"


@pytest.mark.asyncio
async def test_upload_image_on_branch():
    github, repo = build_repo()
    github.add_branch("cms/hello", {})

    await image_service.upload_image(
        repo, "hello", "pic.jpg", b"DATA", branch="cms/hello", settings_obj=make_settings()
    )

    assert "posts/hello/pic.jpg" in github.branches["cms/hello"]["files"]
    assert "posts/hello/pic.jpg" not in github.branches["main"]["files"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("slug", "filename", "data"),
    [
        ("bad slug", "pic.png", b"D"),
        ("ok", "notes.txt", b"D"),
        ("ok", "pic.png", b""),
        ("ok", "", b"D"),
    ],
)
async def test_upload_image_validates_before_network(slug, filename, data):
    github, repo = build_repo()

    with pytest.raises(ValidationError):
        await image_service.upload_image(repo, slug, filename, data)

    assert github.calls == []


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("photo.png", "photo.png"),
        ("my photo (1).jpg", "my_photo__1_.jpg"),
        ("../../etc/passwd.png", ".._.._etc_passwd.png"),
        ("日本.gif", "__.gif"),
    ],
)
def test_sanitize_filename(name, expected):
    assert image_service.sanitize_filename(name) == expected


@pytest.mark.parametrize(
    ("name", "ctype"),
    [
        ("photo.JPG", "image/jpeg"),
        ("photo.jpeg", "image/jpeg"),
        ("logo.PNG", "image/png"),
        ("anim.gif", "image/gif"),
        ("vector.SVG", "image/svg+xml"),
        ("pic.webp", "image/webp"),
        ("unknown.bin", "application/octet-stream"),
    ],
)
def test_get_content_type_from_filename(name, ctype):
    assert image_service.get_content_type_from_filename(name) == ctype
