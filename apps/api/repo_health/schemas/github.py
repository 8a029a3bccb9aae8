from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional


class RepoMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    size_kb: int = 0
    license: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    default_branch: Optional[str] = None
    html_url: Optional[str] = None
    topics: List[str] = []


class FileTreeNode(BaseModel):
    name: str
    path: str
    type: Literal["file", "directory"]
    size: int = 0
    children: Optional[List["FileTreeNode"]] = None


class FileContent(BaseModel):
    path: str
    content: str
