"""Agent interfaces for Tributo.

This module defines the protocol an agent satisfies and the result wrapper
it returns. The protocol uses structural subtyping via typing.Protocol, so
any class with matching method signatures is compatible without explicit
inheritance.

Example Usage:
    ```python
    from tributo_agents.interfaces.base import AgentProtocol, AgentResult

    class EchoAgent:
        async def process(self, tax_input: TaxInput) -> AgentResult[TaxInput]:
            return AgentResult.success(tax_input, agent_name="EchoAgent")

        def validate_input(self, tax_input: TaxInput) -> bool:
            return isinstance(tax_input, TaxInput)

    # EchoAgent is compatible with AgentProtocol[TaxInput, TaxInput]
    ```
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, Field


# =============================================================================
# TYPE VARIABLES
# =============================================================================

InputT = TypeVar("InputT", contravariant=True)
"""Type variable for agent input types. Contravariant for consumer flexibility."""

OutputT = TypeVar("OutputT", covariant=True)
"""Type variable for agent output types. Covariant for producer flexibility."""

ResultT = TypeVar("ResultT")
"""Type variable for result data types."""


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AgentStatus(str, Enum):
    """Status codes for agent execution results."""

    SUCCESS = "success"
    """The model-written result passed validation."""

    PARTIAL = "partial"
    """A result was produced, but by the degraded deterministic path."""

    ERROR = "error"
    """The agent could not produce a result."""


# =============================================================================
# RESULT MODELS
# =============================================================================

class AgentResult(BaseModel, Generic[ResultT]):
    """Standardized wrapper for agent processing results.

    Attributes:
        status: The execution status
        data: The result data, typed according to the agent's OutputT
        error: Error message if status is ERROR, None otherwise
        error_details: Additional error context
        started_at: When processing began
        completed_at: When processing finished
        duration_ms: Processing time in milliseconds
        metadata: Additional context about the processing run
        warnings: Non-fatal issues encountered during processing
        agent_name: Name/identifier of the agent that produced this result
        agent_version: Version of the agent implementation
    """

    status: AgentStatus = Field(
        default=AgentStatus.SUCCESS,
        description="Execution status of the agent"
    )
    data: Optional[Any] = Field(
        default=None,
        description="The result data from agent processing"
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message if status is ERROR"
    )
    error_details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context and details"
    )
    started_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when processing started"
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when processing completed"
    )
    duration_ms: Optional[float] = Field(
        default=None,
        ge=0,
        description="Processing duration in milliseconds"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata about the processing"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal warnings from processing"
    )
    agent_name: Optional[str] = Field(
        default=None,
        description="Name of the agent that produced this result"
    )
    agent_version: Optional[str] = Field(
        default=None,
        description="Version of the agent implementation"
    )

    @property
    def is_success(self) -> bool:
        """Check if the result indicates full success."""
        return self.status == AgentStatus.SUCCESS

    @property
    def is_partial(self) -> bool:
        """Check if the result came from a degraded path."""
        return self.status == AgentStatus.PARTIAL

    @property
    def is_error(self) -> bool:
        """Check if the result indicates an error occurred."""
        return self.status == AgentStatus.ERROR

    @property
    def has_warnings(self) -> bool:
        """Check if any warnings were generated."""
        return len(self.warnings) > 0

    @classmethod
    def success(
        cls,
        data: Any,
        *,
        agent_name: Optional[str] = None,
        agent_version: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        warnings: Optional[list[str]] = None,
    ) -> AgentResult[Any]:
        """Create a successful result with the given data."""
        return cls(
            status=AgentStatus.SUCCESS,
            data=data,
            agent_name=agent_name,
            agent_version=agent_version,
            metadata=metadata or {},
            warnings=warnings or [],
        )

    @classmethod
    def partial(
        cls,
        data: Any,
        *,
        agent_name: Optional[str] = None,
        agent_version: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        warnings: Optional[list[str]] = None,
    ) -> AgentResult[Any]:
        """Create a result produced by a degraded path.

        Args:
            data: The result data
            agent_name: Name of the agent
            agent_version: Version of the agent
            metadata: Additional metadata
            warnings: Why the agent degraded

        Returns:
            An AgentResult with PARTIAL status
        """
        return cls(
            status=AgentStatus.PARTIAL,
            data=data,
            agent_name=agent_name,
            agent_version=agent_version,
            metadata=metadata or {},
            warnings=warnings or [],
        )

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        agent_name: Optional[str] = None,
        agent_version: Optional[str] = None,
    ) -> AgentResult[Any]:
        """Create an error result with the given message."""
        return cls(
            status=AgentStatus.ERROR,
            error=message,
            error_details=details,
            agent_name=agent_name,
            agent_version=agent_version,
        )


# =============================================================================
# AGENT PROTOCOL
# =============================================================================

@runtime_checkable
class AgentProtocol(Protocol[InputT, OutputT]):
    """Protocol defining the contract for agent implementations.

    - `process()`: the async method that performs the agent's work
    - `validate_input()`: a fast synchronous check before processing

    Notes:
        - process() should not raise; failures are reported in AgentResult
    """

    async def process(self, input_data: InputT) -> AgentResult[OutputT]:
        """Process the input and return a result."""
        ...

    def validate_input(self, input_data: InputT) -> bool:
        """Return True if the input can be processed."""
        ...


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Type variables
    "InputT",
    "OutputT",
    "ResultT",
    # Enumerations
    "AgentStatus",
    # Result models
    "AgentResult",
    # Protocols
    "AgentProtocol",
]
