"""
Models module for LLM interactions.
"""

from unified_interview.models.llm_client import (
    CollaboratorUnavailableError,
    LLMClient,
    LLMClientBase,
    LLMResponse,
    Message,
)
from unified_interview.models.response_parser import (
    MalformedExtractionError,
    extract_json,
    parse_structured,
)

__all__ = [
    "CollaboratorUnavailableError",
    "LLMClient",
    "LLMClientBase",
    "LLMResponse",
    "MalformedExtractionError",
    "Message",
    "extract_json",
    "parse_structured",
]
