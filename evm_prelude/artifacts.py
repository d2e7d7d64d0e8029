# Compiled contract artifacts in, rewritten artifacts out.
import json
import os
from typing import Any, Dict

import structlog

from .core.errors import MalformedInputError

logger = structlog.get_logger()

DEFAULT_BUILD_DIR = "build"
CONTRACTS_SUBDIR = "contracts"
OUTPUT_SUBDIR = "injected"


class ArtifactStore:
    """
    Reads Truffle-style artifacts from ``<build_dir>/contracts/<Name>.json`` and
    writes rewritten records to ``<build_dir>/injected/<Name>.json``.
    """

    def __init__(self, build_dir: str = DEFAULT_BUILD_DIR):
        self.build_dir = build_dir
        self.contracts_dir = os.path.join(build_dir, CONTRACTS_SUBDIR)
        self.output_dir = os.path.join(build_dir, OUTPUT_SUBDIR)

    def artifact_path(self, contract_name: str) -> str:
        return os.path.join(self.contracts_dir, f"{contract_name}.json")

    def output_path(self, contract_name: str) -> str:
        return os.path.join(self.output_dir, f"{contract_name}.json")

    def load(self, contract_name: str) -> Dict[str, Any]:
        """Load an artifact; it must carry ``bytecode`` and ``deployedBytecode``."""
        path = self.artifact_path(contract_name)
        logger.debug("Loading contract artifact", path=path)
        try:
            with open(path, "r") as f:
                artifact = json.load(f)
        except FileNotFoundError:
            raise MalformedInputError(f"Artifact file not found: {path}")
        except json.JSONDecodeError as e:
            raise MalformedInputError(f"Artifact {path} is not valid JSON: {e}")

        for key in ("bytecode", "deployedBytecode"):
            value = artifact.get(key)
            if not isinstance(value, str) or not value.startswith("0x"):
                raise MalformedInputError(f"Artifact {path} has no hex {key}")
        return artifact

    def save(self, contract_name: str, record: Dict[str, Any]) -> str:
        """Write ``record`` for ``contract_name`` and return the path written."""
        os.makedirs(self.output_dir, exist_ok=True)
        path = self.output_path(contract_name)
        with open(path, "w") as f:
            json.dump(record, f, indent=2)
        logger.info("Wrote rewritten artifact", path=path)
        return path
