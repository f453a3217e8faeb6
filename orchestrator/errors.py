"""Exception taxonomy for registration, routing and execution failures."""

from __future__ import annotations

from typing import Optional


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""


# ─── Registration ────────────────────────────────────────────────────


class RegistrationError(OrchestratorError):
    """Raised when a graph spec cannot be registered."""


class UnresolvedNodeError(RegistrationError):
    """A graph references a node name with no registered node function."""

    def __init__(self, graph_name: str, node_name: str):
        self.graph_name = graph_name
        self.node_name = node_name
        super().__init__(
            f"Graph '{graph_name}' references unregistered node '{node_name}'"
        )


class UnknownSchemaError(RegistrationError):
    """A graph names a state schema that is not registered."""

    def __init__(self, graph_name: str, schema_name: str):
        self.graph_name = graph_name
        self.schema_name = schema_name
        super().__init__(
            f"Graph '{graph_name}' uses unknown state schema '{schema_name}'"
        )


class InvalidGraphError(RegistrationError):
    """Structural problem: dangling edge endpoint, sentinel misuse, no entry, cycle."""


# ─── Lookup ──────────────────────────────────────────────────────────


class NotFoundError(OrchestratorError):
    """Unknown graph name, node name or thread."""


# ─── Execution ───────────────────────────────────────────────────────


class NodeExecutionError(OrchestratorError):
    """A node function raised (after its retry policy was exhausted)."""

    def __init__(self, node_name: str, cause: BaseException, attempts: int = 1):
        self.node_name = node_name
        self.cause = cause
        self.attempts = attempts
        super().__init__(
            f"Node '{node_name}' failed after {attempts} attempt(s): "
            f"{type(cause).__name__}: {cause}"
        )


class StateUpdateError(OrchestratorError):
    """A partial update names a field the state schema does not declare."""

    def __init__(self, schema_name: str, fields: list[str]):
        self.schema_name = schema_name
        self.fields = fields
        super().__init__(
            f"State schema '{schema_name}' does not declare field(s): {', '.join(fields)}"
        )


class NotResumableError(OrchestratorError):
    """Resume requested for a thread that is not suspended."""


class ThreadBusyError(OrchestratorError):
    """Another invocation is already running on the thread."""

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"Thread '{thread_id}' already has a running invocation")


class ExecutionCancelledError(OrchestratorError):
    """The caller cancelled the invocation between steps."""


class CheckpointConflictError(OrchestratorError):
    """A checkpoint save lost a compare-and-swap race."""

    def __init__(self, thread_id: str, expected_version: int, actual_version: Optional[int]):
        self.thread_id = thread_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Checkpoint for thread '{thread_id}' is at version {actual_version}, "
            f"expected {expected_version}"
        )
