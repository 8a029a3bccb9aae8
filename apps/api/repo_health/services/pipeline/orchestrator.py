from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from loguru import logger

from repo_health.core.config import settings
from repo_health.core.errors import AnalysisError
from repo_health.schemas.analysis import AnalysisResult
from repo_health.schemas.analyze import PipelineProgressEvent
from repo_health.schemas.github import FileTreeNode, RepoMetadata
from repo_health.services.analysis.normalizer import parse_analysis_response
from repo_health.services.analysis.prompt_builder import build_analysis_prompt
from repo_health.services.analysis.stats import FileStats, calculate_file_stats, create_compact_tree_string
from repo_health.services.llm.base import LLMClient
from repo_health.services.retrieval.fetcher import (
    fetch_important_files,
    fetch_repo_metadata,
    fetch_repo_tree,
    retrieve_repository,
)
from repo_health.services.retrieval.github_client import GitHubClient


@dataclass(frozen=True)
class PipelineStep:
    id: str
    label: str


PIPELINE_STEPS = [
    PipelineStep("metadata", "Fetching repository metadata..."),
    PipelineStep("tree", "Retrieving file structure..."),
    PipelineStep("files", "Extracting important files..."),
    PipelineStep("stats", "Calculating file statistics..."),
    PipelineStep("prompt", "Building analysis context..."),
    PipelineStep("generate", "Running AI analysis..."),
    PipelineStep("parse", "Parsing results..."),
    PipelineStep("complete", "Analysis complete!"),
]


@dataclass
class _RunState:
    owner: str
    repo: str
    metadata: Optional[RepoMetadata] = None
    tree: List[FileTreeNode] = field(default_factory=list)
    important_files: Dict[str, str] = field(default_factory=dict)
    stats: Optional[FileStats] = None
    compact_tree: str = ""
    prompt: str = ""
    raw_response: str = ""
    result: Optional[AnalysisResult] = None
    timings_ms: Dict[str, int] = field(default_factory=dict)


def _error_message(e: Exception) -> str:
    if isinstance(e, AnalysisError):
        return e.message
    return str(e) or "Analysis failed"


class AnalysisPipeline:
    """
    Retrieval -> statistics -> prompt -> generation -> parsing for one repository.

    `run` returns the final AnalysisResult (retrieval calls run concurrently).
    `stream` walks the same stages one at a time and yields progress events,
    ending with exactly one `result` or `error` event. No stage is retried and
    no stage has its own timeout beyond the HTTP client timeouts.
    """

    def __init__(
        self,
        github: GitHubClient,
        llm: LLMClient,
        tree_max_nodes: Optional[int] = None,
        max_file_chars: Optional[int] = None,
    ) -> None:
        self.github = github
        self.llm = llm
        self.tree_max_nodes = tree_max_nodes or settings.TREE_MAX_NODES
        self.max_file_chars = max_file_chars or settings.IMPORTANT_FILE_MAX_CHARS

    # -----------------------------
    # Stages
    # -----------------------------

    async def _metadata(self, s: _RunState) -> str:
        s.metadata = await fetch_repo_metadata(self.github, s.owner, s.repo)
        return f"{s.metadata.stars} stars, {s.metadata.forks} forks"

    async def _tree(self, s: _RunState) -> str:
        s.tree = await fetch_repo_tree(self.github, s.owner, s.repo)
        return f"{len(s.tree)} root entries"

    async def _files(self, s: _RunState) -> str:
        s.important_files = await fetch_important_files(self.github, s.owner, s.repo)
        return f"{len(s.important_files)} files extracted"

    async def _stats(self, s: _RunState) -> str:
        s.stats = calculate_file_stats(s.tree)
        s.compact_tree = create_compact_tree_string(s.tree, self.tree_max_nodes)
        return f"{s.stats.total_files} files, {s.stats.total_directories} dirs"

    async def _prompt(self, s: _RunState) -> str:
        s.prompt = build_analysis_prompt(
            s.metadata, s.stats, s.compact_tree, s.important_files, max_file_chars=self.max_file_chars
        )
        return f"{round(len(s.prompt) / 1000)}K chars context"

    async def _generate(self, s: _RunState) -> str:
        s.raw_response = await self.llm.generate(s.prompt)
        return f"{round(len(s.raw_response) / 1000)}K chars response"

    async def _parse(self, s: _RunState) -> str:
        result = parse_analysis_response(s.raw_response)
        if getattr(self.llm, "is_demo", False):
            result.demo = True
        s.result = result
        return f"{len(result.insights)} insights found"

    async def _timed(self, step_id: str, s: _RunState) -> str:
        stage = getattr(self, f"_{step_id}")
        start = time.perf_counter()
        details = await stage(s)
        elapsed = int((time.perf_counter() - start) * 1000)
        s.timings_ms[step_id] = elapsed
        logger.info(f"[{s.owner}/{s.repo}] {step_id}: {details} ({elapsed}ms)")
        return details

    def _log_done(self, s: _RunState) -> None:
        total = sum(s.timings_ms.values())
        logger.info(
            f"Pipeline complete for {s.owner}/{s.repo}: overall={s.result.scores.overall} "
            f"insights={len(s.result.insights)} total={total}ms timings={s.timings_ms}"
        )

    # -----------------------------
    # Entry points
    # -----------------------------

    async def run(self, owner: str, repo: str) -> AnalysisResult:
        s = _RunState(owner=owner, repo=repo)
        logger.info(f"Pipeline started for {owner}/{repo} (llm={self.llm.name})")

        start = time.perf_counter()
        try:
            bundle = await retrieve_repository(self.github, owner, repo)
        except Exception as e:
            logger.error(f"[{owner}/{repo}] retrieval failed: {_error_message(e)}")
            raise
        s.metadata, s.tree, s.important_files = bundle.metadata, bundle.tree, bundle.important_files
        s.timings_ms["retrieval"] = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"[{owner}/{repo}] retrieval: {len(s.tree)} root entries, "
            f"{len(s.important_files)} key files ({s.timings_ms['retrieval']}ms)"
        )

        for step_id in ("stats", "prompt", "generate", "parse"):
            try:
                await self._timed(step_id, s)
            except Exception as e:
                logger.error(f"[{owner}/{repo}] {step_id} failed: {_error_message(e)}")
                raise

        self._log_done(s)
        return s.result

    def _event(self, index: int, status: str, details: Optional[str] = None) -> Dict[str, Any]:
        step = PIPELINE_STEPS[index]
        return PipelineProgressEvent(
            step=index,
            total_steps=len(PIPELINE_STEPS),
            step_id=step.id,
            label=step.label,
            status=status,
            details=details,
            timestamp=int(time.time() * 1000),
        ).model_dump(by_alias=True)

    async def stream(self, owner: str, repo: str) -> AsyncIterator[Dict[str, Any]]:
        s = _RunState(owner=owner, repo=repo)
        logger.info(f"Streaming pipeline started for {owner}/{repo} (llm={self.llm.name})")

        for index, step in enumerate(PIPELINE_STEPS[:-1]):
            hint = f"{self.llm.name} processing..." if step.id == "generate" else None
            yield self._event(index, "active", hint)
            try:
                details = await self._timed(step.id, s)
            except AnalysisError as e:
                logger.error(f"[{owner}/{repo}] {step.id} failed: {e.message}")
                yield self._event(index, "error", e.message)
                yield {"type": "error", "error": e.message}
                return
            except Exception as e:
                logger.exception(f"[{owner}/{repo}] {step.id} failed unexpectedly")
                yield self._event(index, "error", _error_message(e))
                yield {"type": "error", "error": _error_message(e)}
                return
            yield self._event(index, "complete", details)

        self._log_done(s)
        yield self._event(len(PIPELINE_STEPS) - 1, "complete", f"Score: {s.result.scores.overall}/100")
        yield {"type": "result", "data": s.result.model_dump(by_alias=True)}
