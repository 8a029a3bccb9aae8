from __future__ import annotations

import json

# Fixed sample shown only when DEMO_MODE is on and no provider is usable.
DEMO_ANALYSIS = {
    "summary": (
        "DEMO DATA: this is a fixed sample analysis, not an assessment of the requested "
        "repository. Configure an LLM provider key to get a real report."
    ),
    "projectType": "library",
    "maturity": "production",
    "techStack": ["JavaScript", "TypeScript", "Node.js", "Jest", "GitHub Actions"],
    "scores": {
        "overall": 82,
        "codeQuality": 85,
        "security": 78,
        "maintainability": 80,
        "documentation": 84,
        "testing": 79,
        "performance": 83,
        "developerExperience": 81,
    },
    "insights": [
        {
            "type": "strength",
            "title": "Clear module boundaries",
            "description": "Sample insight: packages expose small public entry points and keep internals private.",
            "priority": "high",
        },
        {
            "type": "weakness",
            "title": "Uneven test coverage",
            "description": "Sample insight: integration paths are covered far less than the core utilities.",
            "priority": "medium",
        },
        {
            "type": "security",
            "title": "Review dependency pinning",
            "description": "Sample insight: several runtime dependencies use broad version ranges.",
            "priority": "medium",
        },
        {
            "type": "suggestion",
            "title": "Add contribution guide",
            "description": "Sample insight: a CONTRIBUTING file would shorten onboarding for new contributors.",
            "priority": "low",
        },
    ],
    "architecture": [
        {"name": "Core library", "type": "backend", "description": "Sample component: public API and core logic"},
        {"name": "Build tooling", "type": "tool", "description": "Sample component: bundling and release scripts"},
        {"name": "CI pipeline", "type": "infra", "description": "Sample component: automated tests on every push"},
    ],
    "dependencies": {
        "status": "healthy",
        "outdated": 3,
        "vulnerabilities": 0,
        "heaviest": ["typescript", "jest"],
        "suggestions": ["Sample suggestion: pin transitive dev dependencies"],
    },
    "quickWins": ["Sample: enable strict type checking", "Sample: add a pre-commit hook"],
    "longTermImprovements": ["Sample: add end-to-end tests", "Sample: publish API reference docs"],
}


class DemoLLM:
    name = "demo"
    is_demo = True

    async def generate(self, prompt: str) -> str:
        return json.dumps(DEMO_ANALYSIS)
