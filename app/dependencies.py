from fastapi import Depends, Request

from app.db.github import GitHubClient
from app.repos.posts_repo import GitHubPostsRepo
from app.repos.tree_cache import TreeCache
from app.services.branch_workflow import BranchWorkflow
from app.services.posts_service import PostsService


def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github


def get_tree_cache(request: Request) -> TreeCache:
    return request.app.state.tree_cache


def get_posts_repo(
    client=Depends(get_github_client),
    cache=Depends(get_tree_cache),
):
    return GitHubPostsRepo(client, cache)


def get_branch_workflow(
    client=Depends(get_github_client),
    cache=Depends(get_tree_cache),
):
    return BranchWorkflow(client, cache)


def get_posts_service(
    repo=Depends(get_posts_repo),
    workflow=Depends(get_branch_workflow),
):
    return PostsService(repo=repo, workflow=workflow)
