"""Collaborator interfaces the engine calls through, plus simple implementations."""

from .agent import AgentDispatcher, AgentRegistry, ChatAgent
from .dry_run import DryRunAgent, DryRunIntegrationAdapter
from .integration import IntegrationAdapter, IntegrationDispatcher, IntegrationRegistry
from .record_gateway import InMemoryRecordGateway, RecordGateway
from .workflow_store import WorkflowStore

__all__ = [
    "AgentDispatcher",
    "AgentRegistry",
    "ChatAgent",
    "DryRunAgent",
    "DryRunIntegrationAdapter",
    "IntegrationAdapter",
    "IntegrationDispatcher",
    "IntegrationRegistry",
    "InMemoryRecordGateway",
    "RecordGateway",
    "WorkflowStore",
]
