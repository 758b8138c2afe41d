"""
Agent worker package — the periodic scoring loop.
"""

from backend_veritas.agent_worker.runner import (
    AgentConfig,
    IdentityOutcome,
    PassSummary,
    TrustAgent,
    build_trust_agent,
)

__all__ = ["AgentConfig", "IdentityOutcome", "PassSummary", "TrustAgent", "build_trust_agent"]
