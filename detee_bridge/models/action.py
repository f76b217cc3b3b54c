"""Action request/response models and dispatcher state."""

import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .errors import ErrorBody


class BridgeState(str, Enum):
    """Setup state of an action dispatcher."""

    UNINITIALIZED = "uninitialized"
    CONTAINER_READY = "container_ready"
    ACCOUNT_READY = "account_ready"

    @property
    def level(self) -> int:
        return _STATE_LEVELS[self]

    def at_least(self, other: "BridgeState") -> bool:
        return self.level >= other.level


_STATE_LEVELS = {
    BridgeState.UNINITIALIZED: 0,
    BridgeState.CONTAINER_READY: 1,
    BridgeState.ACCOUNT_READY: 2,
}


class ActionRequest(BaseModel):
    """Action name plus named parameters, as received from the caller."""

    model_config = {"frozen": True}

    action: str = Field(..., description="Action name from the fixed catalogue")
    params: Dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    """Canonical response: either a success payload or a structured error."""

    action: str
    ok: bool
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None

    def to_json(self) -> str:
        """Serialize with sorted keys so equal records give equal bytes."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True)
