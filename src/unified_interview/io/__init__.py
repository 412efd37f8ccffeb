"""
IO module for interview interfaces and outbound integrations.
"""

from unified_interview.io.competency_store import CompetencyStoreClient
from unified_interview.io.text_interface import InterviewInterface, TextInterface

__all__ = ["CompetencyStoreClient", "InterviewInterface", "TextInterface"]
