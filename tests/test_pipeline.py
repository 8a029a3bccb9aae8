"""Tests for the analysis pipeline orchestrator."""

from __future__ import annotations

import pytest

from fakes import FakeGitHub, FakeLLM, generation_failure, not_found
from repo_health.core.errors import GenerationError, ParseError, RetrievalError
from repo_health.services.llm.demo import DemoLLM
from repo_health.services.pipeline.orchestrator import PIPELINE_STEPS, AnalysisPipeline


async def _collect(pipeline: AnalysisPipeline, owner: str = "octocat", repo: str = "Hello-World") -> list[dict]:
    return [event async for event in pipeline.stream(owner, repo)]


@pytest.mark.asyncio
async def test_run_returns_structured_result() -> None:
    gh, llm = FakeGitHub(), FakeLLM()
    result = await AnalysisPipeline(gh, llm).run("octocat", "Hello-World")

    assert result.scores.overall == 64
    assert len(result.insights) == 2
    assert result.demo is False
    assert len(llm.prompts) == 1
    assert "octocat/Hello-World" in llm.prompts[0]
    assert "# Hello World" in llm.prompts[0]


@pytest.mark.asyncio
async def test_run_prompt_respects_configured_limits() -> None:
    gh = FakeGitHub(files={"README.md": "x" * 100})
    llm = FakeLLM()
    await AnalysisPipeline(gh, llm, tree_max_nodes=2, max_file_chars=10).run("octocat", "Hello-World")

    prompt = llm.prompts[0]
    assert "x" * 10 in prompt and "x" * 11 not in prompt
    assert "... +" in prompt


@pytest.mark.asyncio
async def test_retrieval_failure_skips_generation() -> None:
    gh, llm = FakeGitHub(repo_error=not_found()), FakeLLM()

    with pytest.raises(RetrievalError):
        await AnalysisPipeline(gh, llm).run("octocat", "does-not-exist")
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_generation_and_parse_failures_propagate() -> None:
    with pytest.raises(GenerationError):
        await AnalysisPipeline(FakeGitHub(), FakeLLM(error=generation_failure())).run("octocat", "Hello-World")
    with pytest.raises(ParseError):
        await AnalysisPipeline(FakeGitHub(), FakeLLM(response='{"summary": ')).run("octocat", "Hello-World")


@pytest.mark.asyncio
async def test_stream_emits_ordered_progress_then_result() -> None:
    events = await _collect(AnalysisPipeline(FakeGitHub(), FakeLLM()))

    progress = [e for e in events if e["type"] == "progress"]
    steps = [e["step"] for e in progress]
    assert steps == sorted(steps)
    assert all(e["totalSteps"] == len(PIPELINE_STEPS) for e in progress)

    for index, step in enumerate(PIPELINE_STEPS[:-1]):
        statuses = [e["status"] for e in progress if e["stepId"] == step.id]
        assert statuses == ["active", "complete"], step.id

    assert progress[-1]["stepId"] == "complete"
    assert progress[-1]["details"] == "Score: 64/100"
    assert events[-1]["type"] == "result"
    assert events[-1]["data"]["scores"]["overall"] == 64
    assert sum(1 for e in events if e["type"] in ("result", "error")) == 1


@pytest.mark.asyncio
async def test_stream_details_summarise_each_stage() -> None:
    events = await _collect(AnalysisPipeline(FakeGitHub(), FakeLLM()))
    details = {e["stepId"]: e["details"] for e in events if e.get("status") == "complete"}

    assert details["metadata"] == "2500 stars, 2300 forks"
    assert details["tree"] == "5 root entries"
    assert details["files"] == "2 files extracted"
    assert details["stats"] == "6 files, 4 dirs"
    assert details["parse"] == "2 insights found"


@pytest.mark.asyncio
async def test_stream_retrieval_failure_emits_single_error() -> None:
    gh, llm = FakeGitHub(repo_error=not_found()), FakeLLM()
    events = await _collect(AnalysisPipeline(gh, llm), repo="does-not-exist")

    errors = [e for e in events if e["type"] == "error"]
    assert len(errors) == 1
    assert "could not be found" in errors[0]["error"]
    assert events[-1] is errors[0]
    assert not any(e["type"] == "result" for e in events)
    assert llm.prompts == []
    assert gh.calls == ["repo:octocat/does-not-exist"]


@pytest.mark.asyncio
async def test_stream_parse_failure_stops_before_result() -> None:
    events = await _collect(AnalysisPipeline(FakeGitHub(), FakeLLM(response="not json at all")))

    failed = [e for e in events if e.get("status") == "error"]
    assert [e["stepId"] for e in failed] == ["parse"]
    assert events[-1]["type"] == "error"
    assert not any(e["type"] == "result" for e in events)


@pytest.mark.asyncio
async def test_stream_unexpected_exception_is_reported() -> None:
    events = await _collect(AnalysisPipeline(FakeGitHub(), FakeLLM(error=RuntimeError("boom"))))
    assert events[-1] == {"type": "error", "error": "boom"}


@pytest.mark.asyncio
async def test_demo_client_results_are_labelled() -> None:
    result = await AnalysisPipeline(FakeGitHub(), DemoLLM()).run("octocat", "Hello-World")
    assert result.demo is True
