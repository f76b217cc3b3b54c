"""Map parsed records onto the canonical action response shapes."""

from typing import Any, Callable, Dict, List, Optional

import structlog

from ..models.action import ActionResponse
from ..models.errors import BridgeError, NotFoundError
from ..models.records import Account, ContainerStatus, InstallInfo, Worker, WorkerUpdate

logger = structlog.get_logger(__name__)

# Actions for which "not found" is a valid negative answer
NEGATIVE_RESULT_ACTIONS = ("get_worker", "has_worker", "delete_worker")


class ResponseMapper:
    """Builds ``ActionResponse`` objects. The only place that renames fields."""

    def __init__(self):
        self._shapers: Dict[str, Callable[[Any, Dict[str, Any]], Any]] = {
            "test_install": self._install,
            "setup_container": self._container,
            "setup_account": self._account_configured,
            "get_account_info": self._account,
            "create_worker": lambda worker, params: self.worker(worker),
            "list_workers": self._worker_list,
            "get_worker": self._found_worker,
            "has_worker": self._has_worker,
            "update_worker": self._update,
            "delete_worker": self._delete,
        }

    @staticmethod
    def worker(worker: Worker) -> Dict[str, Any]:
        """Expose a worker with ``uuid`` renamed to ``id``."""
        data = worker.model_dump()
        data["id"] = data.pop("uuid")
        return data

    def success(self, action: str, value: Any, params: Optional[Dict[str, Any]] = None) -> ActionResponse:
        shaper = self._shapers[action]
        return ActionResponse(action=action, ok=True, data=shaper(value, params or {}))

    def error(self, action: str, exc: BridgeError) -> ActionResponse:
        body = exc.to_body()
        logger.info("Action failed", action=action, kind=body.kind, error=body.message)
        return ActionResponse(action=action, ok=False, error=body)

    def not_found(self, action: str, exc: NotFoundError, params: Dict[str, Any]) -> ActionResponse:
        """Turn a not-found lookup into the action's negative result."""
        if action not in NEGATIVE_RESULT_ACTIONS:
            return self.error(action, exc)
        worker_id = params.get("worker_id") or exc.resource_id
        if action == "get_worker":
            data = {"found": False, "id": worker_id, "worker": None}
        elif action == "has_worker":
            data = {"id": worker_id, "exists": False}
        else:
            data = {"id": worker_id, "deleted": False}
        return ActionResponse(action=action, ok=True, data=data)

    # Per-action payloads

    def _install(self, info: InstallInfo, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"version": info.version, "installed": True}

    def _container(self, status: ContainerStatus, params: Dict[str, Any]) -> Dict[str, Any]:
        return status.model_dump()

    def _account_configured(self, configured: Dict[str, str], params: Dict[str, Any]) -> Dict[str, Any]:
        return {"configured": True, **configured}

    def _account(self, account: Account, params: Dict[str, Any]) -> Dict[str, Any]:
        return account.model_dump()

    def _worker_list(self, workers: List[Worker], params: Dict[str, Any]) -> Dict[str, Any]:
        return {"workers": [self.worker(w) for w in workers]}

    def _found_worker(self, worker: Worker, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"found": True, "id": worker.uuid, "worker": self.worker(worker)}

    def _has_worker(self, worker: Worker, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": worker.uuid, "exists": True}

    def _update(self, update: WorkerUpdate, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": update.uuid,
            "hardware_modified": update.hardware_modified,
            "hours_updated": update.hours_updated,
        }

    def _delete(self, deleted: bool, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": params.get("worker_id"), "deleted": deleted}
