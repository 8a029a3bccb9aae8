from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from repo_health.schemas.github import FileTreeNode

OTHER_LANGUAGE = "Other"

EXTENSION_LANGUAGES = {
    ".py": "Python",
    ".pyi": "Python",
    ".ipynb": "Jupyter Notebook",
    ".js": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".java": "Java",
    ".kt": "Kotlin",
    ".kts": "Kotlin",
    ".scala": "Scala",
    ".go": "Go",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".c": "C",
    ".h": "C",
    ".cc": "C++",
    ".cpp": "C++",
    ".cxx": "C++",
    ".hpp": "C++",
    ".cs": "C#",
    ".swift": "Swift",
    ".m": "Objective-C",
    ".dart": "Dart",
    ".lua": "Lua",
    ".r": "R",
    ".jl": "Julia",
    ".ex": "Elixir",
    ".exs": "Elixir",
    ".erl": "Erlang",
    ".hs": "Haskell",
    ".clj": "Clojure",
    ".vue": "Vue",
    ".svelte": "Svelte",
    ".html": "HTML",
    ".htm": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".sass": "SCSS",
    ".less": "Less",
    ".sql": "SQL",
    ".sh": "Shell",
    ".bash": "Shell",
    ".zsh": "Shell",
    ".ps1": "PowerShell",
    ".md": "Markdown",
    ".mdx": "Markdown",
    ".rst": "reStructuredText",
    ".json": "JSON",
    ".yml": "YAML",
    ".yaml": "YAML",
    ".toml": "TOML",
    ".xml": "XML",
    ".tf": "HCL",
    ".proto": "Protocol Buffers",
    ".graphql": "GraphQL",
    ".gql": "GraphQL",
}


@dataclass
class FileStats:
    total_files: int = 0
    total_directories: int = 0
    languages: Dict[str, int] = field(default_factory=dict)


def language_for(name: str) -> str:
    """Map a file name to a language by its extension, or OTHER_LANGUAGE."""
    dot = name.rfind(".")
    if dot <= 0:
        return OTHER_LANGUAGE
    return EXTENSION_LANGUAGES.get(name[dot:].lower(), OTHER_LANGUAGE)


def _ordered(nodes: List[FileTreeNode]) -> List[FileTreeNode]:
    return sorted(nodes, key=lambda n: (n.type != "directory", n.name))


def walk(nodes: List[FileTreeNode], depth: int = 0) -> Iterator[Tuple[int, FileTreeNode]]:
    """Depth-first pre-order walk; directories before files, then by name."""
    for node in _ordered(nodes):
        yield depth, node
        if node.children:
            yield from walk(node.children, depth + 1)


def calculate_file_stats(tree: List[FileTreeNode]) -> FileStats:
    stats = FileStats()
    for _, node in walk(tree):
        if node.type == "directory":
            stats.total_directories += 1
            continue
        stats.total_files += 1
        lang = language_for(node.name)
        stats.languages[lang] = stats.languages.get(lang, 0) + 1
    return stats


def create_compact_tree_string(tree: List[FileTreeNode], max_nodes: int = 50) -> str:
    """
    Render the tree one entry per line, two spaces of indent per level, full
    path per entry (directories end with '/'). Order is the `walk` order.
    At most `max_nodes` entries are written; the rest are counted in a
    trailing '... +N more' line.
    """
    lines: List[str] = []
    omitted = 0
    for depth, node in walk(tree):
        if len(lines) >= max_nodes:
            omitted += 1
            continue
        suffix = "/" if node.type == "directory" else ""
        lines.append(f"{'  ' * depth}{node.path}{suffix}")

    if omitted:
        lines.append(f"... +{omitted} more")
    if not lines:
        return "(empty repository)"
    return "\n".join(lines)
