from typing import Optional

from fastapi import Depends, Request

from repo_health.core.config import settings
from repo_health.services.llm.factory import get_llm_client
from repo_health.services.pipeline.orchestrator import AnalysisPipeline
from repo_health.services.retrieval.cache import ContentCache
from repo_health.services.retrieval.github_client import GitHubClient


def github_token(request: Request) -> Optional[str]:
    """Bearer header, then X-GitHub-Token, then the github_token cookie, then server config."""
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        if token:
            return token
    return (
        request.headers.get("x-github-token")
        or request.cookies.get("github_token")
        or settings.GITHUB_TOKEN
    )


def get_content_cache(request: Request) -> ContentCache:
    return request.app.state.content_cache


def get_github_client(
    token: Optional[str] = Depends(github_token),
    cache: ContentCache = Depends(get_content_cache),
) -> GitHubClient:
    return GitHubClient(token=token, cache=cache)


def get_pipeline(gh: GitHubClient = Depends(get_github_client)) -> AnalysisPipeline:
    return AnalysisPipeline(github=gh, llm=get_llm_client(settings))
