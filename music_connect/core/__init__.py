"""Core utilities for Music Connect."""

from .llm import ConfigurationError, GenerationError, LLMClient, llm_json
from .proposal_store import SAVED_ACTIVITIES_KEY, ProposalStore
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage, StorageError

__all__ = [
    "ConfigurationError",
    "GenerationError",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "LLMClient",
    "ProposalStore",
    "SAVED_ACTIVITIES_KEY",
    "StorageError",
    "llm_json",
]
