"""Action dispatcher - the single entry point of the bridge.

A dispatcher owns its settings, its exec bridge and its setup state. It
validates every request before anything reaches the container, runs the
rendered commands through the bridge and maps the parsed result (or the
error) onto an ``ActionResponse``.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from ..config import Settings, get_action, get_action_names, settings as default_settings
from ..models.action import ActionResponse, BridgeState
from ..models.command import RenderedCommand
from ..models.errors import (
    BridgeError,
    InvalidParameterError,
    NotConfiguredError,
    NotFoundError,
    UnknownActionError,
)
from .container import ContainerExecutor, DockerCliExecutor
from .interfaces import ExecBridge
from .mapper import ResponseMapper
from .parsing import OutputParser
from .shell import CommandRenderer, ShellDialect, get_dialect

logger = structlog.get_logger(__name__)


def create_bridge(config: Settings, dialect: ShellDialect) -> ExecBridge:
    """Build the exec bridge selected by ``exec_backend``."""
    if config.exec_backend == "shell":
        return DockerCliExecutor(config.docker, dialect)
    return ContainerExecutor(config.docker)


class ActionDispatcher:
    """Validates, executes and maps actions while tracking setup state."""

    def __init__(
        self,
        bridge: ExecBridge,
        config: Optional[Settings] = None,
        renderer: Optional[CommandRenderer] = None,
        parser: Optional[OutputParser] = None,
        mapper: Optional[ResponseMapper] = None,
    ):
        self.config = config or default_settings
        self.bridge = bridge
        self.renderer = renderer or CommandRenderer(
            get_dialect(self.config.resolve_platform()), self.config
        )
        self.parser = parser or OutputParser(self.config.parser_extra_labels)
        self.mapper = mapper or ResponseMapper()
        self._state = BridgeState.UNINITIALIZED
        self._handlers: Dict[str, Callable[[List[RenderedCommand], Dict[str, Any]], Any]] = {
            "test_install": self._test_install,
            "setup_container": self._setup_container,
            "setup_account": self._setup_account,
            "get_account_info": self._get_account_info,
            "create_worker": self._create_worker,
            "list_workers": self._list_workers,
            "get_worker": self._find_worker,
            "has_worker": self._find_worker,
            "update_worker": self._update_worker,
            "delete_worker": self._delete_worker,
        }

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        platform: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> "ActionDispatcher":
        """Build a dispatcher and its bridge from settings, with optional overrides."""
        config = config or default_settings
        updates = {}
        if platform:
            updates["host_platform"] = platform
        if backend:
            updates["exec_backend"] = backend
        if updates:
            config = config.model_copy(update=updates)
        dialect = get_dialect(config.resolve_platform())
        return cls(
            create_bridge(config, dialect),
            config=config,
            renderer=CommandRenderer(dialect, config),
        )

    @property
    def state(self) -> BridgeState:
        return self._state

    def _advance(self, state: BridgeState) -> None:
        if state.level > self._state.level:
            logger.info("Bridge state changed", old=self._state.value, new=state.value)
            self._state = state

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def list_actions(self) -> List[str]:
        """Names of every supported action, in declaration order."""
        return get_action_names()

    def get_action_definition(self, name: str) -> Optional[Dict[str, Any]]:
        """Description and parameters of an action, or None if unknown."""
        definition = get_action(name)
        return definition.to_dict() if definition else None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, action: str, params: Optional[Mapping[str, Any]] = None) -> ActionResponse:
        """Run one action and return its canonical response.

        Only ``BridgeError`` is turned into an error response; anything else
        is a bug and propagates.
        """
        params = dict(params or {})
        logger.info("Dispatching action", action=action, state=self._state.value)
        try:
            commands = self._validate(action, params)
            value = self._handlers[action](commands, params)
        except NotFoundError as e:
            return self.mapper.not_found(action, e, params)
        except BridgeError as e:
            return self.mapper.error(action, e)
        return self.mapper.success(action, value, params)

    def _validate(self, action: str, params: Dict[str, Any]) -> List[RenderedCommand]:
        """Check action, state and parameters, then render. Spawns nothing."""
        definition = get_action(action)
        if definition is None:
            raise UnknownActionError(action)
        if not self._state.at_least(definition.min_state):
            raise NotConfiguredError(action, self._state.value, definition.min_state.value)

        unknown = sorted(set(params) - set(definition.param_names))
        if unknown:
            raise InvalidParameterError(unknown[0], f"not a parameter of '{action}'")
        for name in definition.required_params:
            value = params.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise InvalidParameterError(name, "is required")
        if "worker_id" in params:
            params["worker_id"] = str(params["worker_id"]).strip()

        commands = self.renderer.render(action, params)
        for command in commands:
            logger.debug("Rendered command", action=action, command=command.host_command)
        return commands

    def _run(self, command: RenderedCommand):
        return self.bridge.execute(command, timeout=self.config.command_timeout)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _test_install(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.parse_version(self._run(commands[0]))

    def _setup_container(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        status = self.bridge.ensure_container(commands[0])
        self._advance(BridgeState.CONTAINER_READY)
        return status

    def _setup_account(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        for command in commands:
            self.parser.check(self._run(command))
        self._advance(BridgeState.ACCOUNT_READY)
        return {
            "ssh_key_path": str(params["ssh_key_path"]).strip(),
            "brain_url": str(params["brain_url"]).strip(),
        }

    def _get_account_info(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.parse_account(self._run(commands[0]))

    def _create_worker(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        requested = self.renderer.resolve_deploy_params(params)
        return self.parser.parse_created_worker(self._run(commands[0]), requested)

    def _list_workers(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.parse_worker_list(self._run(commands[0]))

    def _find_worker(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.find_worker(self._run(commands[0]), params["worker_id"])

    def _update_worker(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.parse_update(self._run(commands[0]), params["worker_id"])

    def _delete_worker(self, commands: List[RenderedCommand], params: Dict[str, Any]):
        return self.parser.parse_delete(self._run(commands[0]), params["worker_id"])

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def refresh_state(self) -> BridgeState:
        """Re-derive the setup state by probing the container and the account."""
        if not self.bridge.is_running():
            self._state = BridgeState.UNINITIALIZED
            return self._state

        self._state = BridgeState.CONTAINER_READY
        command = self.renderer.render("get_account_info")[0]
        try:
            account = self.parser.parse_account(self._run(command))
        except BridgeError as e:
            logger.info("Account not configured", kind=e.kind.value, error=e.message)
            return self._state
        if account.brain_url:
            self._state = BridgeState.ACCOUNT_READY
        logger.info("Bridge state refreshed", state=self._state.value)
        return self._state
