# Environment Materializer
#
# Turns stored credentials into environment variables for downstream
# tools, in one of two modes:
#
#   Immediate - decrypt now and return / inject {ENV_VAR: value}.
#   Deferred  - write an EnvDescriptor: a JSON list of (env_var, key)
#               bindings with no values. Whoever needs the environment
#               later evaluates it through the store API. The descriptor
#               is plain data; it never contains shell substitution syntax.

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional, Sequence

from .core import EventSeverity, EventType, get_audit_logger
from .vault import CorruptCredential, CredentialStore, WELL_KNOWN_CREDENTIALS
from .vault.fileio import atomic_write, ensure_private_dir
from .vault.slots import validate_key_name

logger = logging.getLogger(__name__)

DESCRIPTOR_VERSION = 1


@dataclass(frozen=True)
class EnvBinding:
    """One environment variable bound to one credential key."""

    env_var: str
    key: str


class EnvDescriptor:
    """Lazy materializer descriptor: an ordered list of EnvBindings."""

    def __init__(self, bindings: Sequence[EnvBinding]):
        env_vars = [b.env_var for b in bindings]
        duplicates = sorted({v for v in env_vars if env_vars.count(v) > 1})
        if duplicates:
            raise ValueError(f"Duplicate environment variables in descriptor: {duplicates}")
        for binding in bindings:
            validate_key_name(binding.key)
        self.bindings: List[EnvBinding] = list(bindings)

    @classmethod
    def well_known(cls) -> "EnvDescriptor":
        return cls([EnvBinding(spec.env_var, spec.key) for spec in WELL_KNOWN_CREDENTIALS])

    def to_dict(self) -> dict:
        return {
            "version": DESCRIPTOR_VERSION,
            "bindings": [{"env": b.env_var, "credential": b.key} for b in self.bindings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EnvDescriptor":
        if not isinstance(data, dict) or data.get("version") != DESCRIPTOR_VERSION:
            raise ValueError("Unsupported environment descriptor version")
        try:
            bindings = [EnvBinding(item["env"], item["credential"]) for item in data["bindings"]]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed environment descriptor: {e}") from e
        return cls(bindings)

    def __len__(self) -> int:
        return len(self.bindings)

    def __iter__(self):
        return iter(self.bindings)


class EnvironmentMaterializer:
    """Expands credential bindings into environment values via the store."""

    def __init__(self, store: CredentialStore, descriptor: Optional[EnvDescriptor] = None):
        self.store = store
        if descriptor is None:
            descriptor = EnvDescriptor.well_known()
        self.descriptor = descriptor
        self.logger = get_audit_logger()

    def evaluate(
        self,
        descriptor: Optional[EnvDescriptor] = None,
        skip_corrupt: bool = False
    ) -> Dict[str, str]:
        """
        Decrypt every bound credential that is configured.

        Args:
            descriptor: Bindings to evaluate (default: this materializer's)
            skip_corrupt: Leave corrupt credentials out instead of raising

        Returns:
            {ENV_VAR: value} for configured credentials only

        Raises:
            CorruptCredential: a bound slot fails to open (unless skipped)
        """
        if descriptor is None:
            descriptor = self.descriptor
        environment: Dict[str, str] = {}
        for binding in descriptor:
            try:
                value = self.store.load(binding.key)
            except CorruptCredential:
                if not skip_corrupt:
                    raise
                logger.warning("Skipping corrupt credential %s", binding.key)
                continue
            if value:
                environment[binding.env_var] = value
        return environment

    def materialize(self, skip_corrupt: bool = False) -> Dict[str, str]:
        """Immediate mode: decrypt now and return the mapping."""
        return self.evaluate(skip_corrupt=skip_corrupt)

    def inject(
        self,
        environ: Optional[MutableMapping[str, str]] = None,
        skip_corrupt: bool = False
    ) -> List[str]:
        """Immediate mode: write values into ``environ`` (default os.environ)."""
        if environ is None:
            environ = os.environ
        environment = self.materialize(skip_corrupt=skip_corrupt)
        environ.update(environment)

        names = sorted(environment)
        self.logger.log_event(
            event_type=EventType.ENV_MATERIALIZED,
            severity=EventSeverity.INFO,
            message=f"Injected {len(names)} credential(s) into environment",
            details={"env_vars": names},
        )
        return names

    def write_descriptor(self, path: Path) -> Path:
        """Deferred mode: persist the bindings (never the values)."""
        path = Path(path)
        ensure_private_dir(path.parent)
        atomic_write(path, json.dumps(self.descriptor.to_dict(), indent=2) + "\n")

        self.logger.log_event(
            event_type=EventType.DESCRIPTOR_WRITTEN,
            severity=EventSeverity.INFO,
            message="Environment descriptor written",
            details={"path": str(path), "bindings": len(self.descriptor)},
        )
        return path


def read_descriptor(path: Path) -> EnvDescriptor:
    """Load a descriptor written by ``write_descriptor``."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not a valid environment descriptor: {e}") from e
    return EnvDescriptor.from_dict(data)
