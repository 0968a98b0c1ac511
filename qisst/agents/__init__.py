"""Committee advisor package."""

from qisst.agents.advisor import (
    CONNECTION_ERROR_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    FALLBACK_MESSAGES,
    NO_API_KEY_MESSAGE,
    AdvisoryUnavailable,
    CommitteeAdvisor,
    build_prompt,
    normalize_query,
)

__all__ = [
    "CONNECTION_ERROR_MESSAGE",
    "EMPTY_RESPONSE_MESSAGE",
    "FALLBACK_MESSAGES",
    "NO_API_KEY_MESSAGE",
    "AdvisoryUnavailable",
    "CommitteeAdvisor",
    "build_prompt",
    "normalize_query",
]
