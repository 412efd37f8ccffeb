"""
Unified interview engine.

Runs one conversational HR interview while driving five assessment modules
from the same stream of candidate answers.
"""

__version__ = "0.1.0"
