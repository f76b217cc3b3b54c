"""Output parsing for detee-cli commands."""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import ValidationError

from ...config.labels import (
    ACCOUNT_LABELS,
    EMPTY_LIST_PHRASES,
    NOT_FOUND_PHRASES,
    UPDATE_LABELS,
    WORKER_LABELS,
    LabelSet,
    merge_labels,
)
from ...models.command import CommandResult
from ...models.errors import CommandFailedError, NotFoundError, ParseError
from ...models.records import Account, InstallInfo, Worker, WorkerUpdate
from .extract import coerce_fields, find_json, json_fields, parse_table, sanitize, scan_labels

logger = structlog.get_logger(__name__)

_VERSION = re.compile(r"(?i)detee-cli\s+v?(?P<version>\d\S*)")
_SEMVER = re.compile(r"\bv?(?P<version>\d+\.\d+(?:\.\d+)?(?:[-+][0-9A-Za-z.-]+)?)\b")

# Shell exit codes for "command not found" and "not executable"
_SHELL_ERROR_CODES = (126, 127)

_VM_WORD = re.compile(r"\bvms?\b")

_WORKER_FIELDS = tuple(Worker.model_fields)
_ACCOUNT_FIELDS = tuple(Account.model_fields)


class OutputParser:
    """Turns captured command output into domain records.

    Each ``parse_*`` method checks the exit code first: a non-zero exit is a
    ``CommandFailedError`` unless the action treats "not found" as a result.
    Structured JSON is tried before the label and table scan.
    """

    def __init__(
        self,
        extra_labels: Optional[Mapping[str, Iterable[str]]] = None,
        not_found_phrases: Iterable[str] = NOT_FOUND_PHRASES,
        empty_list_phrases: Iterable[str] = EMPTY_LIST_PHRASES,
    ):
        extra = extra_labels or {}
        self.account_labels: LabelSet = merge_labels(ACCOUNT_LABELS, extra)
        self.worker_labels: LabelSet = merge_labels(WORKER_LABELS, extra)
        self.update_labels: LabelSet = merge_labels(UPDATE_LABELS, extra)
        self.not_found_phrases = tuple(p.lower() for p in not_found_phrases)
        self.empty_list_phrases = tuple(p.lower() for p in empty_list_phrases)

    # ------------------------------------------------------------------
    # Exit status
    # ------------------------------------------------------------------

    def check(self, result: CommandResult) -> None:
        """Raise CommandFailedError for a non-zero exit, stderr first."""
        if result.success:
            return
        output = result.stderr.strip() or result.stdout.strip()
        raise CommandFailedError(
            output, exit_code=result.exit_code, stdout=result.stdout, stderr=result.stderr
        )

    def is_not_found(self, result: CommandResult, worker_id: str) -> bool:
        """Check whether a failed command says the targeted VM does not exist.

        A phrase only counts on a line that names the VM: either the line
        carries ``worker_id``, the phrase itself names a VM ("no such vm"), or
        the word "vm" precedes the phrase ("Error: VM ... not found").
        """
        if result.success or result.exit_code in _SHELL_ERROR_CODES:
            return False
        target = worker_id.lower()
        text = sanitize(f"{result.stderr}\n{result.stdout}").lower()
        for line in text.splitlines():
            for phrase in self.not_found_phrases:
                at = line.find(phrase)
                if at == -1:
                    continue
                if (target and target in line) or _VM_WORD.search(phrase) or _VM_WORD.search(line[:at]):
                    return True
        return False

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def parse_version(self, result: CommandResult) -> InstallInfo:
        self.check(result)
        raw = result.stdout
        text = sanitize(raw).strip()
        data = find_json(text, dict, raw)
        if data and data.get("version"):
            return InstallInfo(version=str(data["version"]))
        match = _VERSION.search(text) or _SEMVER.search(text)
        if not match:
            raise ParseError("no version in output", raw)
        return InstallInfo(version=match.group("version"))

    def parse_account(self, result: CommandResult) -> Account:
        self.check(result)
        raw = result.stdout
        text = sanitize(raw)
        data = find_json(text, dict, raw)
        if data is not None:
            values = json_fields(data, _ACCOUNT_FIELDS)
        else:
            values = scan_labels(text, self.account_labels)
        values = {k: str(v).strip() for k, v in values.items() if v is not None and str(v).strip()}
        missing = [name for name in ("config_path", "brain_url") if name not in values]
        if missing:
            raise ParseError(f"missing account fields: {', '.join(missing)}", raw)
        return Account(**values)

    def parse_created_worker(
        self, result: CommandResult, requested: Optional[Mapping[str, Any]] = None
    ) -> Worker:
        """Parse deploy output, filling hardware fields from the request."""
        self.check(result)
        raw = result.stdout
        text = sanitize(raw)
        data = find_json(text, dict, raw)
        if data is not None:
            values = json_fields(data, _WORKER_FIELDS)
        else:
            values = scan_labels(text, self.worker_labels)
        if "uuid" not in values:
            raise ParseError("no VM id in deploy output", raw)
        fields = coerce_fields(values, raw)
        for name, value in (requested or {}).items():
            if name in _WORKER_FIELDS:
                fields.setdefault(name, value)
        return self._worker(fields, raw)

    def parse_worker_list(self, result: CommandResult) -> List[Worker]:
        self.check(result)
        raw = result.stdout
        text = sanitize(raw)
        if not text.strip():
            return []

        data = find_json(text, (list, dict), raw)
        if isinstance(data, dict):
            data = next((data[key] for key in ("vms", "workers", "items") if isinstance(data.get(key), list)), None)
            if data is None:
                raise ParseError("JSON output has no VM list", raw)
        if data is not None:
            rows = []
            for item in data:
                if not isinstance(item, dict):
                    raise ParseError("VM list entry is not an object", raw)
                rows.append(json_fields(item, _WORKER_FIELDS))
        else:
            rows = parse_table(text, raw)

        if rows is None:
            lowered = text.lower()
            if any(phrase in lowered for phrase in self.empty_list_phrases):
                return []
            raise ParseError("no VM table in output", raw)

        workers = []
        for row in rows:
            if not row.get("uuid"):
                raise ParseError("VM row without id", raw)
            workers.append(self._worker(coerce_fields(row, raw), raw))
        logger.debug("Parsed VM list", count=len(workers))
        return workers

    def find_worker(self, result: CommandResult, worker_id: str) -> Worker:
        """Pick one VM out of a list result.

        A failed listing is always a CommandFailedError; absence is only
        concluded from a list that parsed.

        Raises:
            NotFoundError: the VM is not in the list
        """
        for worker in self.parse_worker_list(result):
            if worker.uuid.lower() == worker_id.lower():
                return worker
        raise NotFoundError("VM", worker_id)

    def parse_update(self, result: CommandResult, worker_id: str) -> WorkerUpdate:
        if self.is_not_found(result, worker_id):
            raise NotFoundError("VM", worker_id)
        self.check(result)
        raw = result.stdout
        text = sanitize(raw)
        data = find_json(text, dict, raw)
        if data is not None:
            hardware = bool(data.get("hardware_modified", False))
            hours = data.get("hours_updated")
        else:
            values = scan_labels(text, self.update_labels)
            if not values:
                raise ParseError("no update confirmation in output", raw)
            hardware = "hardware_modified" in values
            hours = values.get("hours_updated")
        fields = coerce_fields({"hours_updated": hours}, raw)
        return WorkerUpdate(uuid=worker_id, hardware_modified=hardware, **fields)

    def parse_delete(self, result: CommandResult, worker_id: str) -> bool:
        """Return True when the VM was deleted, False when it was already gone."""
        if self.is_not_found(result, worker_id):
            return False
        self.check(result)
        return True

    def _worker(self, fields: Dict[str, Any], raw: str) -> Worker:
        try:
            return Worker(**fields)
        except ValidationError as e:
            raise ParseError(f"invalid VM record: {e.errors()[0]['msg']}", raw) from e
