from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger

from repo_health.core.errors import RetrievalError
from repo_health.schemas.github import FileTreeNode, RepoMetadata
from repo_health.services.retrieval.github_client import GitHubClient

# Conventionally significant files fetched for context, in prompt order.
IMPORTANT_FILES = [
    "package.json",
    "README.md",
    "requirements.txt",
    "pyproject.toml",
    "setup.py",
    "Cargo.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "Gemfile",
    "composer.json",
    "tsconfig.json",
    "Dockerfile",
    "docker-compose.yml",
    ".env.example",
]


@dataclass
class RetrievedRepository:
    metadata: RepoMetadata
    tree: List[FileTreeNode]
    important_files: Dict[str, str]


def _license_name(data: Dict[str, Any]) -> Optional[str]:
    lic = data.get("license") or {}
    spdx = lic.get("spdx_id")
    if spdx and spdx != "NOASSERTION":
        return spdx
    return lic.get("name")


async def fetch_repo_metadata(gh: GitHubClient, owner: str, repo: str) -> RepoMetadata:
    data = await gh.get_repo(owner, repo)
    if not data:
        raise RetrievalError(
            f"Repository {owner}/{repo} could not be found or is not accessible",
            kind=RetrievalError.NOT_FOUND,
        )

    return RepoMetadata(
        full_name=data.get("full_name") or f"{owner}/{repo}",
        description=data.get("description"),
        language=data.get("language"),
        stars=data.get("stargazers_count") or 0,
        forks=data.get("forks_count") or 0,
        open_issues=data.get("open_issues_count") or 0,
        size_kb=data.get("size") or 0,
        license=_license_name(data),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
        default_branch=data.get("default_branch"),
        html_url=data.get("html_url"),
        topics=data.get("topics") or [],
    )


def build_tree(entries: List[Dict[str, Any]]) -> List[FileTreeNode]:
    """
    Fold GitHub's flat recursive tree listing into root-level nodes.
    Children are ordered directories first, then by name.
    """
    nodes: Dict[str, FileTreeNode] = {}
    roots: List[FileTreeNode] = []

    def _dir(path: str) -> FileTreeNode:
        node = nodes.get(path)
        if node is None:
            # truncated listings can skip a parent entry
            node = _attach(path, "directory", 0)
        elif node.children is None:
            node.children = []
        return node

    def _attach(path: str, kind: str, size: int) -> FileTreeNode:
        parent, _, name = path.rpartition("/")
        node = FileTreeNode(
            name=name,
            path=path,
            type=kind,
            size=size,
            children=[] if kind == "directory" else None,
        )
        nodes[path] = node
        if parent:
            _dir(parent).children.append(node)
        else:
            roots.append(node)
        return node

    for it in entries:
        path = (it.get("path") or "").strip("/")
        if not path or path in nodes:
            continue
        kind = "directory" if it.get("type") == "tree" else "file"
        _attach(path, kind, it.get("size") or 0)

    def _sort(items: List[FileTreeNode]) -> None:
        items.sort(key=lambda n: (n.type != "directory", n.name))
        for n in items:
            if n.children:
                _sort(n.children)

    _sort(roots)
    return roots


async def fetch_repo_tree(gh: GitHubClient, owner: str, repo: str) -> List[FileTreeNode]:
    try:
        data = await gh.get_tree(owner, repo)
    except RetrievalError as e:
        # 409 is GitHub's answer for a repository without commits
        if e.status_code in (404, 409):
            logger.info(f"No file tree for {owner}/{repo} (status={e.status_code}), treating as empty")
            return []
        raise

    if data.get("truncated"):
        logger.warning(f"GitHub truncated the file tree of {owner}/{repo}")
    return build_tree(data.get("tree") or [])


async def _fetch_optional(gh: GitHubClient, owner: str, repo: str, path: str) -> Optional[str]:
    try:
        return await gh.get_raw(owner, repo, path)
    except RetrievalError as e:
        if e.kind == RetrievalError.NOT_FOUND:
            return None
        raise


async def fetch_important_files(gh: GitHubClient, owner: str, repo: str) -> Dict[str, str]:
    results = await asyncio.gather(
        *(_fetch_optional(gh, owner, repo, name) for name in IMPORTANT_FILES),
        return_exceptions=True,
    )

    files: Dict[str, str] = {}
    for name, res in zip(IMPORTANT_FILES, results):
        if isinstance(res, BaseException):
            raise res
        if res is not None:
            files[name] = res
    return files


async def retrieve_repository(gh: GitHubClient, owner: str, repo: str) -> RetrievedRepository:
    """Run the three independent retrieval calls concurrently."""
    results = await asyncio.gather(
        fetch_repo_metadata(gh, owner, repo),
        fetch_repo_tree(gh, owner, repo),
        fetch_important_files(gh, owner, repo),
        return_exceptions=True,
    )
    # report the first failure in call order: metadata, tree, files
    for res in results:
        if isinstance(res, BaseException):
            raise res

    metadata, tree, important_files = results
    return RetrievedRepository(metadata=metadata, tree=tree, important_files=important_files)
