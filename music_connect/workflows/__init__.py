"""Workflow entry points for orchestrating Music Connect generations."""

from .session import (
    DetailStatus,
    DetailView,
    ProposalSession,
    WorkflowStatus,
    format_generation_error,
)

__all__ = [
    "DetailStatus",
    "DetailView",
    "ProposalSession",
    "WorkflowStatus",
    "format_generation_error",
]
