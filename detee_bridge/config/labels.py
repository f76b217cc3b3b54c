"""Field labels recognized in detee-cli output.

detee-cli prints human-oriented text whose wording shifts between releases,
so the labels live here as data. ``Settings.parser_extra_labels`` adds to
these sets without code changes.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class Label:
    """Text that introduces a field value on a line of output.

    A plain label must be followed by a colon ("Config path: /root/...").
    An inline label is followed directly by the value ("Locking 12.5 LP").
    """

    text: str
    inline: bool = False


LabelSet = Dict[str, Tuple[Label, ...]]


ACCOUNT_LABELS: LabelSet = {
    "config_path": (Label("Config path"),),
    "brain_url": (Label("brain URL"),),
    "ssh_key_path": (Label("SSH Key Path"),),
    "wallet_public_key": (Label("Wallet public key"),),
    "account_balance": (Label("Account Balance"),),
    "wallet_secret_key_path": (Label("Wallet secret key path"),),
}

WORKER_LABELS: LabelSet = {
    "uuid": (Label("VM CREATED!", inline=True), Label("UUID")),
    "hostname": (Label("Using random VM name"), Label("Hostname")),
    "distro": (Label("Distro"),),
    "vcpus": (Label("vCPUs"), Label("Cores")),
    "memory_mb": (Label("Memory"),),
    "disk_gb": (Label("Disk"),),
    "hours": (Label("Hours"),),
    "price": (Label("Node price"), Label("Price")),
    "total_units": (Label("Total Units for hardware requested"), Label("Total Units")),
    "locked_lp": (Label("Locking", inline=True), Label("Locked LP")),
    "ssh_port": (Label("ssh -p", inline=True), Label("SSH port")),
    "ssh_host": (Label("ssh -p", inline=True), Label("SSH host")),
    "status": (Label("Status"),),
}

UPDATE_LABELS: LabelSet = {
    "hardware_modified": (
        Label("The node accepted the hardware modifications", inline=True),
    ),
    "hours_updated": (Label("will run for another", inline=True),),
}

# Table headers and JSON keys, normalized (lowercase, punctuation collapsed)
COLUMN_ALIASES: Dict[str, str] = {
    "uuid": "uuid",
    "id": "uuid",
    "city": "city",
    "hostname": "hostname",
    "name": "hostname",
    "distro": "distro",
    "cores": "vcpus",
    "vcpus": "vcpus",
    "cpus": "vcpus",
    "mem mb": "memory_mb",
    "memory mb": "memory_mb",
    "memory": "memory_mb",
    "mem": "memory_mb",
    "disk gb": "disk_gb",
    "disk": "disk_gb",
    "hours": "hours",
    "price": "price",
    "total units": "total_units",
    "locked lp": "locked_lp",
    "lp h": "lp_per_hour",
    "lp per hour": "lp_per_hour",
    "time left": "time_left",
    "ssh host": "ssh_host",
    "ssh port": "ssh_port",
    "status": "status",
    "state": "status",
}

NOT_FOUND_PHRASES: Tuple[str, ...] = (
    "not found",
    "does not exist",
    "no such vm",
    "unknown vm",
    "no vm with",
)

EMPTY_LIST_PHRASES: Tuple[str, ...] = (
    "no vms",
    "no vm found",
    "no virtual machines",
)


def merge_labels(base: LabelSet, extra: Mapping[str, Iterable[str]]) -> LabelSet:
    """Return ``base`` with extra colon-form labels appended per field.

    Extra entries for fields ``base`` does not know are ignored.
    """
    merged = dict(base)
    for field_name, texts in extra.items():
        if field_name not in merged:
            continue
        merged[field_name] = merged[field_name] + tuple(Label(t) for t in texts)
    return merged


def normalize_label(text: str) -> str:
    """Normalize a header or key for alias lookup: "Mem (MB)" -> "mem mb"."""
    return " ".join(re.findall(r"[a-z0-9]+", text.lower()))
