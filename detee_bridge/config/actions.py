"""Action catalogue - single source of truth for the fixed action set.

Each entry names the action's parameters and the dispatcher state it needs
before anything is rendered or executed.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..models.action import BridgeState


@dataclass(frozen=True)
class ParamDefinition:
    """A named action parameter."""

    name: str
    description: str
    type: str = "string"  # "string" or "integer"
    required: bool = False
    default: Any = None


@dataclass(frozen=True)
class ActionDefinition:
    """Definition of one action in the catalogue."""

    name: str
    description: str
    parameters: Tuple[ParamDefinition, ...] = ()
    min_state: BridgeState = BridgeState.ACCOUNT_READY

    @property
    def required_params(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {
                    "name": p.name,
                    "description": p.description,
                    "type": p.type,
                    "required": p.required,
                    "default": p.default,
                }
                for p in self.parameters
            ],
        }


PROVIDER_NAME = "detee"
PROVIDER_TYPE = "command"

_WORKER_ID = ParamDefinition("worker_id", "UUID of the VM", required=True)

# Declaration order is the order reported by list_actions()
ACTIONS: Dict[str, ActionDefinition] = {
    "test_install": ActionDefinition(
        name="test_install",
        description="Test if detee-cli is properly installed in the container",
        min_state=BridgeState.CONTAINER_READY,
    ),
    "setup_container": ActionDefinition(
        name="setup_container",
        description="Create or start the detee-cli container with its volume mounts",
        min_state=BridgeState.UNINITIALIZED,
    ),
    "setup_account": ActionDefinition(
        name="setup_account",
        description="Register the SSH public key and brain URL with detee-cli",
        parameters=(
            ParamDefinition(
                "ssh_key_path",
                "Container path of the SSH public key (generated if missing)",
                required=True,
            ),
            ParamDefinition("brain_url", "Brain service URL", required=True),
        ),
        min_state=BridgeState.CONTAINER_READY,
    ),
    "get_account_info": ActionDefinition(
        name="get_account_info",
        description="Get DeeTEE account information",
        min_state=BridgeState.CONTAINER_READY,
    ),
    "create_worker": ActionDefinition(
        name="create_worker",
        description="Create a new DeeTEE virtual machine",
        parameters=(
            ParamDefinition("distro", "Linux distribution", default="ubuntu"),
            ParamDefinition("vcpus", "Number of vCPUs", type="integer", default=2),
            ParamDefinition("memory_mb", "Memory in MB", type="integer", default=2048),
            ParamDefinition("disk_gb", "Disk size in GB", type="integer", default=20),
            ParamDefinition("hours", "Runtime in hours", type="integer", default=4),
        ),
    ),
    "list_workers": ActionDefinition(
        name="list_workers",
        description="List all DeeTEE virtual machines",
    ),
    "get_worker": ActionDefinition(
        name="get_worker",
        description="Get information about a DeeTEE virtual machine",
        parameters=(_WORKER_ID,),
    ),
    "has_worker": ActionDefinition(
        name="has_worker",
        description="Check if a DeeTEE virtual machine exists",
        parameters=(_WORKER_ID,),
    ),
    "update_worker": ActionDefinition(
        name="update_worker",
        description="Update a DeeTEE virtual machine",
        parameters=(
            _WORKER_ID,
            ParamDefinition("vcpus_param", "'--vcpus NUMBER' or empty to leave unchanged"),
            ParamDefinition("memory_param", "'--memory NUMBER' or empty to leave unchanged"),
            ParamDefinition("hours_param", "'--hours NUMBER' or empty to leave unchanged"),
        ),
    ),
    "delete_worker": ActionDefinition(
        name="delete_worker",
        description="Delete a DeeTEE virtual machine",
        parameters=(_WORKER_ID,),
    ),
}


def get_action(name: str) -> Optional[ActionDefinition]:
    """Get the definition of an action, or None if it is not in the catalogue."""
    return ACTIONS.get(name)


def get_action_names() -> list[str]:
    """Get all action names in declaration order."""
    return list(ACTIONS.keys())


def is_known_action(name: str) -> bool:
    """Check if an action name is in the catalogue."""
    return name in ACTIONS
