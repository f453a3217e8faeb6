"""Values passed between the executor and node functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from .. import settings

if TYPE_CHECKING:
    from ..llm.client import LLMClient, LLMResponse


@dataclass
class Interrupt:
    """Returned by a node to suspend the thread until a human responds.

    The payload (prompt text, options, context) is persisted with the
    checkpoint and streamed to the caller in an InterruptEvent.
    """

    payload: Any = None


@dataclass
class Resume:
    """Execute input that answers a pending interrupt."""

    value: Any = None


@dataclass
class NodeContext:
    """Per-call context handed to node functions taking two arguments.

    Attributes:
        node_name: Name the node is registered under
        graph_name: Graph being executed
        thread_id: Thread being advanced
        config: Snapshot of the node's runtime config at call time
        run_config: Caller-supplied invocation config (e.g. conversation context)
        llm: Language-model client, if the executor has one
        resumed: True when this call answers the node's own interrupt
        resume_value: The human response when ``resumed``
        attempt: 1-based attempt number under the node's retry policy
    """

    node_name: str
    graph_name: str
    thread_id: str
    config: Dict[str, Any] = field(default_factory=dict)
    run_config: Dict[str, Any] = field(default_factory=dict)
    llm: Optional["LLMClient"] = None
    resumed: bool = False
    resume_value: Any = None
    attempt: int = 1

    @property
    def model(self) -> str:
        return self.config.get("model") or settings.NODE_DEFAULT_MODEL

    @property
    def temperature(self) -> float:
        temperature = self.config.get("temperature")
        return settings.NODE_DEFAULT_TEMPERATURE if temperature is None else float(temperature)

    async def complete(self, prompt: str) -> "LLMResponse":
        """Call the language model with this node's model and temperature."""
        if self.llm is None:
            raise RuntimeError(f"Node '{self.node_name}' needs an LLM client but none is configured")
        return await self.llm.complete(self.model, prompt, self.temperature)
