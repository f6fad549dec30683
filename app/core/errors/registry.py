"""
Error registry: the code table behind every BillingError response.

Each entry in registry.yaml fixes the HTTP status, log severity, caller-safe
message and operator remediation for one ``BIL-<DOMAIN>-NNN`` code. The file
is validated as a whole at startup; a malformed registry stops the service.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from app.core.errors import CODE_PATTERN

logger = logging.getLogger(__name__)

DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "registry.yaml")

VALID_DOMAINS = {"AUTH", "CFG", "VER", "RES", "UPS", "DB", "SYS"}
VALID_SEVERITIES = {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"}
REQUIRED_FIELDS = {"code", "domain", "title", "severity", "retryable", "http_status", "safe_message"}


@dataclass(frozen=True)
class ErrorEntry:
    code: str
    domain: str
    title: str
    severity: str
    retryable: bool
    http_status: int
    safe_message: str
    expose_detail: bool = False
    remediation: List[str] = field(default_factory=list)


class RegistryValidationError(Exception):
    """registry.yaml is structurally invalid."""


def _parse_entry(idx: int, raw: Dict[str, Any]) -> ErrorEntry:
    if not isinstance(raw, dict):
        raise RegistryValidationError(f"Entry {idx}: expected a mapping")

    missing = REQUIRED_FIELDS - raw.keys()
    if missing:
        raise RegistryValidationError(
            f"Entry {idx} ({raw.get('code', '?')}): missing fields {sorted(missing)}"
        )

    code, domain, severity = raw["code"], raw["domain"], raw["severity"]
    if not CODE_PATTERN.match(code):
        raise RegistryValidationError(f"Invalid code format: {code!r}")
    if code.split("-")[1] != domain:
        raise RegistryValidationError(f"{code}: domain {domain!r} doesn't match code prefix")
    if domain not in VALID_DOMAINS:
        raise RegistryValidationError(f"{code}: unknown domain {domain!r}")
    if severity not in VALID_SEVERITIES:
        raise RegistryValidationError(f"{code}: unknown severity {severity!r}")

    return ErrorEntry(
        code=code,
        domain=domain,
        title=raw["title"],
        severity=severity,
        retryable=bool(raw["retryable"]),
        http_status=int(raw["http_status"]),
        safe_message=raw["safe_message"],
        expose_detail=bool(raw.get("expose_detail", False)),
        remediation=list(raw.get("remediation") or []),
    )


class ErrorRegistry:
    """Validated code table, loaded once from YAML."""

    def __init__(self) -> None:
        self._entries: Dict[str, ErrorEntry] = {}
        self.schema_version: int = 0

    def load(self, path: str = DEFAULT_PATH) -> None:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        raw_entries = data.get("errors", [])
        if not isinstance(raw_entries, list):
            raise RegistryValidationError("'errors' must be a list")

        entries: Dict[str, ErrorEntry] = {}
        for idx, raw in enumerate(raw_entries):
            entry = _parse_entry(idx, raw)
            if entry.code in entries:
                raise RegistryValidationError(f"Duplicate code: {entry.code}")
            entries[entry.code] = entry

        self._entries = entries
        self.schema_version = data.get("schema_version", 0)
        logger.info("error_registry_loaded", extra={"count": len(entries), "schema_version": self.schema_version})

    def get(self, code: str) -> ErrorEntry | None:
        return self._entries.get(code)


# Module-level singleton, loaded once at startup
error_registry = ErrorRegistry()
