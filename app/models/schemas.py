"""Pydantic schemas for the orchestrator HTTP API.

Field names on the wire follow the camelCase client contract;
aliases map them onto snake_case attributes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orchestrator.engine.loader import GraphEntry


class ThreadMessage(BaseModel):
    """One prior message of the client-side conversation."""
    kind: str = Field(..., description="'message.human' for user turns, anything else is AI")
    text: str = ""


class ConversationContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    thread_messages: List[ThreadMessage] = Field(default_factory=list, alias="threadMessages")

    def to_context(self) -> Dict[str, Any]:
        """Plain dict in the shape the orchestrator service reads."""
        return self.model_dump()


class ExecuteRequest(BaseModel):
    """Request for POST /execute."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    conversation_context: Optional[ConversationContext] = Field(None, alias="conversationContext")
    config: Dict[str, Any] = Field(default_factory=dict)


class AddGraphRequest(GraphEntry):
    """Request for POST /add-graph (same shape as a graphs.json entry)."""


class NodeConfigData(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)


class UpdateNodeRequest(BaseModel):
    """Request for POST /update-node."""
    model_config = ConfigDict(populate_by_name=True)

    step_name: str = Field(..., alias="stepName", min_length=1)
    data: NodeConfigData

    def config_update(self) -> Dict[str, Any]:
        return self.data.model_dump(exclude_none=True)


class GraphHistoryResponse(BaseModel):
    count: int
    last_updated_at: str
    thread_id: str
    root_id: str
