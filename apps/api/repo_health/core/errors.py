from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base for every failure that can end an analysis run."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RetrievalError(AnalysisError):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    UPSTREAM = "upstream"

    def __init__(
        self,
        message: str,
        kind: str = UPSTREAM,
        status_code: Optional[int] = None,
        rate_limit_remaining: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.kind = kind
        self.status_code = status_code
        self.rate_limit_remaining = rate_limit_remaining
        self.rate_limit_reset = rate_limit_reset


class GenerationError(AnalysisError):
    def __init__(self, message: str, provider: str = "", details: Optional[str] = None) -> None:
        super().__init__(message, details=details)
        self.provider = provider


class ParseError(AnalysisError):
    def __init__(self, message: str, snippet: str = "", details: Optional[str] = None) -> None:
        super().__init__(message, details=details)
        self.snippet = snippet
