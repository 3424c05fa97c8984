"""Agent interfaces.

Available Interfaces:
    AgentProtocol: The protocol agent implementations satisfy
    AgentResult: Standardized result wrapper for agent outputs
    AgentStatus: Enum for execution status codes
"""

from tributo_agents.interfaces.base import (
    # Type variables
    InputT,
    OutputT,
    ResultT,
    # Enumerations
    AgentStatus,
    # Result models
    AgentResult,
    # Protocols
    AgentProtocol,
)

__all__ = [
    "InputT",
    "OutputT",
    "ResultT",
    "AgentStatus",
    "AgentResult",
    "AgentProtocol",
]
