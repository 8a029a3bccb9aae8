from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from repo_health.api.deps import get_github_client
from repo_health.core.errors import RetrievalError
from repo_health.schemas.analyze import ErrorResponse
from repo_health.schemas.github import FileContent, FileTreeNode
from repo_health.services.retrieval.github_client import GitHubClient

router = APIRouter(tags=["repos"])

_STATUS_BY_KIND = {
    RetrievalError.NOT_FOUND: 404,
    RetrievalError.FORBIDDEN: 403,
    RetrievalError.RATE_LIMITED: 403,
}


def _retrieval_error(e: RetrievalError) -> JSONResponse:
    body = ErrorResponse(error=e.message, details=e.details)
    return JSONResponse(status_code=_STATUS_BY_KIND.get(e.kind, 502), content=body.model_dump())


@router.get("/repos/{owner}/{repo}/contents", response_model=List[FileTreeNode], response_model_exclude_none=True)
async def list_contents(owner: str, repo: str, path: str = "", gh: GitHubClient = Depends(get_github_client)):
    try:
        return await gh.list_contents(owner, repo, path.strip("/"))
    except RetrievalError as e:
        return _retrieval_error(e)


@router.get("/repos/{owner}/{repo}/file", response_model=FileContent)
async def get_file(owner: str, repo: str, path: str, gh: GitHubClient = Depends(get_github_client)):
    path = path.strip("/")
    try:
        content = await gh.get_file_content(owner, repo, path)
    except RetrievalError as e:
        return _retrieval_error(e)
    return FileContent(path=path, content=content)
