from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import httpx

from repo_health.core.config import settings
from repo_health.core.errors import RetrievalError
from repo_health.schemas.github import FileTreeNode
from repo_health.services.retrieval.cache import ContentCache

GITHUB_JSON = "application/vnd.github+json"
GITHUB_RAW = "application/vnd.github.raw"
API_VERSION = "2022-11-28"


@dataclass
class GitHubRateLimit:
    remaining: Optional[int]
    reset_epoch: Optional[int]


class GitHubClient:
    """Thin async wrapper over the GitHub REST API.

    Every call attaches the bearer token when one is configured and raises
    RetrievalError on failure. Nothing is retried here.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base: Optional[str] = None,
        timeout: Optional[float] = None,
        cache: Optional[ContentCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base or settings.GITHUB_API_URL).rstrip("/")
        self.token = token or settings.GITHUB_TOKEN
        self.timeout = timeout or settings.GITHUB_TIMEOUT_SECONDS
        self.cache = cache
        self._transport = transport

    def _headers(self, accept: str = GITHUB_JSON) -> Dict[str, str]:
        headers = {
            "Accept": accept,
            "User-Agent": "repo-health-bot/0.1",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _rate_limit(self, resp: httpx.Response) -> GitHubRateLimit:
        def _to_int(v: Optional[str]) -> Optional[int]:
            try:
                return int(v) if v is not None else None
            except ValueError:
                return None

        remaining = _to_int(resp.headers.get("x-ratelimit-remaining"))
        reset = _to_int(resp.headers.get("x-ratelimit-reset"))
        return GitHubRateLimit(remaining=remaining, reset_epoch=reset)

    def _raise_for_status(self, resp: httpx.Response, what: str) -> None:
        status = resp.status_code
        if status < 400:
            return

        body = resp.text[:300]
        if status == 404:
            raise RetrievalError(
                f"{what} could not be found or is not accessible",
                kind=RetrievalError.NOT_FOUND,
                status_code=status,
                details=body,
            )

        if status in (401, 403, 429):
            rl = self._rate_limit(resp)
            if status == 429 or rl.remaining == 0:
                # GitHub asks clients not to retry before the reset time
                raise RetrievalError(
                    f"GitHub rate limit exceeded while fetching {what}. "
                    f"Add a GitHub token or retry after reset={rl.reset_epoch}",
                    kind=RetrievalError.RATE_LIMITED,
                    status_code=status,
                    rate_limit_remaining=rl.remaining,
                    rate_limit_reset=rl.reset_epoch,
                    details=body,
                )
            raise RetrievalError(
                f"Access to {what} is forbidden. status={status}",
                kind=RetrievalError.FORBIDDEN,
                status_code=status,
                rate_limit_remaining=rl.remaining,
                rate_limit_reset=rl.reset_epoch,
                details=body,
            )

        raise RetrievalError(
            f"GitHub API error while fetching {what}. status={status}",
            kind=RetrievalError.UPSTREAM,
            status_code=status,
            details=body,
        )

    async def _request(
        self,
        path: str,
        what: str,
        params: Optional[Dict[str, Any]] = None,
        accept: str = GITHUB_JSON,
    ) -> httpx.Response:
        url = f"{self.base}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, headers=self._headers(accept), params=params)
        except httpx.HTTPError as e:
            raise RetrievalError(
                f"Network error while fetching {what}: {e.__class__.__name__}",
                kind=RetrievalError.NETWORK,
                details=str(e),
            ) from e

        self._raise_for_status(resp, what)
        return resp

    async def _get(self, path: str, what: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._request(path, what, params=params)
        return resp.json()

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get(f"/repos/{owner}/{repo}", f"repository {owner}/{repo}")

    async def get_tree(self, owner: str, repo: str, ref: str = "HEAD") -> Dict[str, Any]:
        return await self._get(
            f"/repos/{owner}/{repo}/git/trees/{ref}",
            f"file tree of {owner}/{repo}",
            params={"recursive": "1"},
        )

    async def get_raw(self, owner: str, repo: str, path: str) -> str:
        resp = await self._request(
            f"/repos/{owner}/{repo}/contents/{path}",
            f"{path} in {owner}/{repo}",
            accept=GITHUB_RAW,
        )
        return resp.text

    # Browsing helpers. These go through the shared cache when one is injected.

    def _cache_key(self, kind: str, owner: str, repo: str, path: str) -> Tuple[Any, ...]:
        # entries are scoped to the credential that fetched them
        fingerprint = hashlib.sha256(self.token.encode()).hexdigest()[:16] if self.token else None
        return (kind, fingerprint, owner, repo, path)

    async def list_contents(self, owner: str, repo: str, path: str = "") -> List[FileTreeNode]:
        key = self._cache_key("contents", owner, repo, path)
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                return hit

        data = await self._get(f"/repos/{owner}/{repo}/contents/{path}", f"{path or '/'} in {owner}/{repo}")
        items = data if isinstance(data, list) else [data]
        nodes = [
            FileTreeNode(
                name=it.get("name", ""),
                path=it.get("path", ""),
                type="directory" if it.get("type") == "dir" else "file",
                size=it.get("size") or 0,
            )
            for it in items
        ]
        nodes.sort(key=lambda n: (n.type != "directory", n.name.lower()))

        if self.cache is not None:
            self.cache.set(key, nodes)
        return nodes

    async def get_file_content(self, owner: str, repo: str, path: str) -> str:
        key = self._cache_key("file", owner, repo, path)
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                return hit

        text = await self.get_raw(owner, repo, path)

        if self.cache is not None:
            self.cache.set(key, text)
        return text
