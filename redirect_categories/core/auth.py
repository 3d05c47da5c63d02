from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PrincipalType(str, Enum):
    MACHINE = "machine"


@dataclass(slots=True)
class Principal:
    principal_type: PrincipalType
    subject: str
    scopes: set[str]

    def require_scopes(self, required: set[str]) -> None:
        missing = required - self.scopes
        if missing:
            raise PermissionError(f"missing required scopes: {sorted(missing)}")


@dataclass(slots=True)
class MachineCredential:
    module_id: str
    key_hash: str
    scopes: set[str] = field(default_factory=set)


# sha256("local-wiki-key") and sha256("local-worker-key"); dev defaults only.
DEFAULT_MACHINE_CREDENTIALS: dict[str, dict[str, Any]] = {
    "local-wiki": {
        "key_hash": "9ce88f567ea2e71c5a56ef57cc681f2638ee6e254bbd7acca5d14de415a96b91",
        "scopes": ["transform:write", "hooks:write"],
    },
    "local-worker": {
        "key_hash": "6f66508f25b793f2e3123c95ad70f7c3d2066f3b3b4f8a55227ca23c8f0bba64",
        "scopes": ["jobs:read", "jobs:write"],
    },
}


def parse_machine_credentials(raw: str | None) -> dict[str, MachineCredential]:
    if raw is None or not raw.strip():
        payload: Any = DEFAULT_MACHINE_CREDENTIALS
    else:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("machine credentials must be a JSON object") from exc
    if not isinstance(payload, dict):
        raise ValueError("machine credentials must be a JSON object")

    credentials: dict[str, MachineCredential] = {}
    for module_id, entry in payload.items():
        if not isinstance(entry, dict):
            continue
        key_hash = entry.get("key_hash")
        if not isinstance(key_hash, str) or not key_hash:
            continue
        raw_scopes = entry.get("scopes")
        scopes = {scope for scope in raw_scopes if isinstance(scope, str)} if isinstance(raw_scopes, list) else set()
        credentials[str(module_id)] = MachineCredential(module_id=str(module_id), key_hash=key_hash.lower(), scopes=scopes)
    return credentials
