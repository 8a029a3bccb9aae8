from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from repo_health.schemas.github import RepoMetadata
from repo_health.services.analysis.stats import FileStats

MAX_FILE_CHARS = 4000
MAX_LANGUAGES = 10
MAX_DEPENDENCIES = 20
MAX_DEV_DEPENDENCIES = 15

SCORE_FIELDS = [
    "overall",
    "codeQuality",
    "security",
    "maintainability",
    "documentation",
    "testing",
    "performance",
    "developerExperience",
]

OUTPUT_FIELDS = [
    "summary",
    "projectType",
    "maturity",
    "techStack",
    "scores",
    "insights",
    "architecture",
    "dependencies",
    "quickWins",
    "longTermImprovements",
]

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._\-]*(?:\[[^\]]*\])?)\s*(.*)$")


@dataclass
class DeepContext:
    """Signals derived from the retrieved files before prompting.

    The has_* flags come from case-insensitive substring matches over the
    compact tree text (plus the language counts for TypeScript). They are
    heuristics: a folder such as ``testimonials/`` reads as tests, and
    anything cut from the compact tree is invisible to them.
    """

    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)
    has_tests: bool = False
    has_ci: bool = False
    has_docs: bool = False
    has_docker: bool = False
    has_typescript: bool = False


def _string_map(value) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def _requirement_map(items) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not isinstance(items, list):
        return out
    for raw in items:
        m = _REQUIREMENT_NAME.match(str(raw))
        if not m:
            continue
        out[m.group(1)] = m.group(2).strip() or "*"
    return out


def _parse_package_json(text: str) -> Optional[DeepContext]:
    try:
        pkg = json.loads(text)
    except ValueError:
        logger.debug("package.json is not valid JSON, ignoring it")
        return None
    if not isinstance(pkg, dict):
        return None
    return DeepContext(
        dependencies=_string_map(pkg.get("dependencies")),
        dev_dependencies=_string_map(pkg.get("devDependencies")),
        scripts=_string_map(pkg.get("scripts")),
    )


def _parse_pyproject(text: str) -> Optional[DeepContext]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        logger.debug("pyproject.toml is not valid TOML, ignoring it")
        return None
    project = data.get("project")
    if not isinstance(project, dict):
        return None

    dev: Dict[str, str] = {}
    extras = project.get("optional-dependencies")
    if isinstance(extras, dict):
        for group in extras.values():
            dev.update(_requirement_map(group))

    return DeepContext(
        dependencies=_requirement_map(project.get("dependencies")),
        dev_dependencies=dev,
        scripts=_string_map(project.get("scripts")),
    )


def extract_deep_context(stats: FileStats, compact_tree: str, important_files: Dict[str, str]) -> DeepContext:
    ctx = None
    if "package.json" in important_files:
        ctx = _parse_package_json(important_files["package.json"])
    if ctx is None and "pyproject.toml" in important_files:
        ctx = _parse_pyproject(important_files["pyproject.toml"])
    if ctx is None:
        ctx = DeepContext()

    tree = compact_tree.lower()
    ctx.has_tests = "test" in tree or "spec" in tree or "__tests__" in tree
    ctx.has_ci = any(k in tree for k in (".github/workflows", ".circleci", "jenkinsfile", ".gitlab-ci"))
    ctx.has_docs = "docs/" in tree or "documentation" in tree
    ctx.has_docker = "dockerfile" in tree or "docker-compose" in tree
    ctx.has_typescript = "tsconfig" in tree or stats.languages.get("TypeScript", 0) > 0
    return ctx


def truncate(text: str, limit: int = MAX_FILE_CHARS) -> str:
    # str slicing counts code points, so multi-byte characters stay whole
    return text[:limit]


def format_size_mb(size_kb: int) -> str:
    return f"{size_kb / 1024:.1f} MB"


def render_metadata(metadata: RepoMetadata) -> str:
    return "\n".join([
        f"- Repository: {metadata.full_name}",
        f"- Description: {metadata.description or 'Not provided'}",
        f"- Primary Language: {metadata.language or 'Unknown'}",
        f"- Stars: {metadata.stars:,}",
        f"- Forks: {metadata.forks:,}",
        f"- Open Issues: {metadata.open_issues:,}",
        f"- Size: {format_size_mb(metadata.size_kb)}",
        f"- License: {metadata.license or 'Not specified'}",
        f"- Created: {metadata.created_at or 'Unknown'}",
        f"- Last Updated: {metadata.updated_at or 'Unknown'}",
    ])


def render_languages(languages: Dict[str, int], limit: int = MAX_LANGUAGES) -> str:
    ranked = sorted(languages.items(), key=lambda kv: (-kv[1], kv[0]))
    lines = [f"  - {lang}: {count} files" for lang, count in ranked[:limit]]
    if len(ranked) > limit:
        lines.append(f"  - ... and {len(ranked) - limit} more languages")
    return "\n".join(lines) if lines else "  - (none detected)"


def _render_map(title: str, items: Dict[str, str], limit: Optional[int], fmt: str) -> str:
    if not items:
        return ""
    entries = list(items.items())
    shown = entries if limit is None else entries[:limit]
    lines = [f"### {title} ({len(entries)})"]
    lines += [fmt.format(name=k, value=v) for k, v in shown]
    if limit is not None and len(entries) > limit:
        lines.append(f"... and {len(entries) - limit} more")
    return "\n".join(lines)


def render_detected_configuration(ctx: DeepContext) -> str:
    lines = []
    if ctx.has_typescript:
        lines.append("- [x] TypeScript project")
    lines.append("- [x] Has test files/directory" if ctx.has_tests else "- [ ] No obvious test setup detected")
    lines.append("- [x] CI/CD pipeline configured" if ctx.has_ci else "- [ ] No CI configuration found")
    lines.append("- [x] Documentation present" if ctx.has_docs else "- [ ] Limited documentation")
    if ctx.has_docker:
        lines.append("- [x] Docker configuration found")

    blocks = ["\n".join(lines)]
    for block in (
        _render_map("Dependencies", ctx.dependencies, MAX_DEPENDENCIES, "- {name}: {value}"),
        _render_map("Dev Dependencies", ctx.dev_dependencies, MAX_DEV_DEPENDENCIES, "- {name}: {value}"),
        _render_map("Scripts", ctx.scripts, None, "- `{name}`: {value}"),
    ):
        if block:
            blocks.append(block)
    return "\n\n".join(blocks)


def render_important_files(important_files: Dict[str, str], limit: int = MAX_FILE_CHARS) -> str:
    if not important_files:
        return "(no key files found)"
    return "\n\n".join(
        f"### {name}\n```\n{truncate(content, limit)}\n```"
        for name, content in important_files.items()
    )


OUTPUT_INSTRUCTIONS = """# OUTPUT FORMAT

Respond with ONLY one valid JSON object: no markdown fences, no prose before or after it.
Use exactly these fields:

{
  "summary": "3-4 sentence executive summary: purpose, audience, overall assessment",
  "projectType": "web-app" | "api" | "library" | "cli" | "mobile" | "desktop" | "other",
  "maturity": "prototype" | "alpha" | "beta" | "production" | "mature",
  "techStack": ["technology with version when visible", "..."],
  "scores": {
    "overall": 0-100,
    "codeQuality": 0-100,
    "security": 0-100,
    "maintainability": 0-100,
    "documentation": 0-100,
    "testing": 0-100,
    "performance": 0-100,
    "developerExperience": 0-100
  },
  "insights": [
    {
      "type": "strength" | "weakness" | "suggestion" | "security",
      "title": "short, specific title",
      "description": "2-3 sentences citing files or patterns",
      "priority": "low" | "medium" | "high" | "critical"
    }
  ],
  "architecture": [
    {
      "name": "component name",
      "type": "frontend" | "backend" | "database" | "service" | "infra" | "tool",
      "description": "what it does"
    }
  ],
  "dependencies": {
    "status": "healthy" | "warning" | "critical",
    "outdated": 0,
    "vulnerabilities": 0,
    "heaviest": ["package", "..."],
    "suggestions": ["...", "..."]
  },
  "quickWins": ["...", "..."],
  "longTermImprovements": ["...", "..."]
}

All scores are integers between 0 and 100. Provide 12-18 insights.
"""


def build_analysis_prompt(
    metadata: RepoMetadata,
    stats: FileStats,
    compact_tree: str,
    important_files: Dict[str, str],
    max_file_chars: int = MAX_FILE_CHARS,
) -> str:
    """
    Assemble the full analysis prompt. Pure: the same inputs always give the
    same string. Each key file is cut to `max_file_chars` characters.
    """
    ctx = extract_deep_context(stats, compact_tree, important_files)

    return f"""# REPOSITORY DEEP ANALYSIS REQUEST

You are an elite software architect, security researcher and code quality reviewer.
Analyze the GitHub repository below and produce a health report.

## REPOSITORY OVERVIEW
{render_metadata(metadata)}

## CODEBASE STATISTICS
- Total Files: {stats.total_files}
- Total Directories: {stats.total_directories}
- Language Distribution:
{render_languages(stats.languages)}

## PROJECT STRUCTURE (truncated)
```
{compact_tree}
```

## DETECTED CONFIGURATION (heuristic)
{render_detected_configuration(ctx)}

## KEY FILES CONTENT
{render_important_files(important_files, max_file_chars)}

# ANALYSIS INSTRUCTIONS

Think like a principal engineer doing an architecture and code review.
1. Summary: what the project does, who it is for, how production-ready it is.
2. Technology stack: frameworks, languages, state, styling, API layer, testing, build, CI/CD.
3. Architecture: pattern (monolith, microservices, serverless...), directory organisation, separation of concerns, data flow.
4. Scores: overall, code quality, security, maintainability, documentation, testing, performance, developer experience.
5. Insights: strengths, weaknesses, security risks (secrets, input validation, dependency exposure) and suggestions, each with a priority.
6. Dependency health: currency, known vulnerabilities, heavy packages, lighter alternatives.
7. Quick wins and long-term improvements.

Be critical but constructive, and reference concrete file paths when possible.

{OUTPUT_INSTRUCTIONS}"""
