from typing import List, Optional

from pydantic import BaseModel, Field


class PostSummary(BaseModel):
    path: str
    slug: str
    sha: str
    title: str
    date: str = ""
    tag: List[str] = Field(default_factory=list)
    description: str = ""
    featured: bool = False
    draft: bool = False
    editing: bool = False
    branch_only: bool = False
    branch: Optional[str] = None


class PostDetail(BaseModel):
    path: str
    slug: str
    sha: str
    branch: Optional[str] = None
    title: str = ""
    date: str = ""
    tag: List[str] = Field(default_factory=list)
    description: str = ""
    ogp_url: str = ""
    featured: bool = False
    body: str = ""
    meta: dict = Field(default_factory=dict)


class PostFields(BaseModel):
    title: Optional[str] = None
    date: Optional[str] = None
    tag: Optional[List[str]] = None
    description: Optional[str] = None
    ogp_url: Optional[str] = None
    featured: Optional[bool] = None

    def meta(self) -> dict:
        """Front matter fields only; request plumbing like sha or branch is left out."""
        return self.model_dump(include=set(PostFields.model_fields), exclude_none=True)


class CreatePostRequest(PostFields):
    slug: str
    title: str
    draft: bool = False
    content: str = ""


class SavePostRequest(PostFields):
    sha: Optional[str] = None
    branch: Optional[str] = None
    body: str = ""


class RenamePostRequest(BaseModel):
    new_name: str
    sha: str
    branch: str


class PublishRequest(BaseModel):
    branch: str
    title: Optional[str] = None


class BranchRequest(BaseModel):
    slug: str


class WriteResult(BaseModel):
    path: str
    sha: str
    commit_sha: Optional[str] = None
    branch: Optional[str] = None


class BranchResult(BaseModel):
    branch: str
    sha: str


class BranchList(BaseModel):
    branches: List[str]
    slugs: List[str]


class PublishResponse(BaseModel):
    merged: bool
    pr_number: int
    branch_deleted: bool


class ImageUploadResult(BaseModel):
    url: str
    path: str
