"""
Hardhat artifact resolver

Reads compiled contracts from the Hardhat artifacts directory, laid out as
artifacts/contracts/<Name>.sol/<Name>.json.
"""

import glob
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import ArtifactError, ArtifactNotFound

logger = logging.getLogger(__name__)

LIBRARY_PLACEHOLDER = re.compile(r"__\$\w{34}\$__")


@dataclass(frozen=True)
class Artifact:
    """Deployable bytecode and ABI for one contract"""
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    path: Optional[str] = None

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        ctor = next((item for item in self.abi if item.get("type") == "constructor"), None)
        if not ctor:
            return []
        return ctor.get("inputs", [])

    @property
    def unlinked_libraries(self) -> List[str]:
        return sorted(set(LIBRARY_PLACEHOLDER.findall(self.bytecode or "")))

    @property
    def is_deployable(self) -> bool:
        return bool(self.bytecode) and self.bytecode != "0x"

    def has_function(self, name: str) -> bool:
        return any(item.get("type") == "function" and item.get("name") == name for item in self.abi)


def load_artifact(file_path: str, name: Optional[str] = None) -> Artifact:
    """Loads a contract artifact from its JSON file."""
    try:
        with open(file_path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ArtifactError(f"Could not read artifact {file_path}: {e}")

    if "abi" not in data or "bytecode" not in data:
        raise ArtifactError(f"Artifact {file_path} has no abi/bytecode")

    return Artifact(
        name=name or data.get("contractName") or os.path.splitext(os.path.basename(file_path))[0],
        abi=data["abi"],
        bytecode=data["bytecode"],
        path=file_path,
    )


class ArtifactResolver:
    """Looks up contract artifacts by name, caching what it has loaded"""

    def __init__(self, artifacts_dir: str = "artifacts"):
        self.artifacts_dir = artifacts_dir
        self._cache: Dict[str, Artifact] = {}

    def _candidates(self, name: str) -> List[str]:
        conventional = os.path.join(self.artifacts_dir, 'contracts', f'{name}.sol', f'{name}.json')
        if os.path.isfile(conventional):
            return [conventional]
        # Contracts declared in a file with a different name, or nested directories
        pattern = os.path.join(self.artifacts_dir, '**', f'{name}.json')
        return sorted(path for path in glob.glob(pattern, recursive=True)
                      if os.sep + 'build-info' + os.sep not in path)

    def resolve(self, name: str) -> Artifact:
        """
        Resolve a contract name to its artifact

        Args:
            name: Contract name as written in Solidity

        Returns:
            The loaded Artifact

        Raises:
            ArtifactNotFound: no artifact for the name
            ArtifactError: artifact unreadable or ambiguous
        """
        if name in self._cache:
            return self._cache[name]

        candidates = self._candidates(name)
        if not candidates:
            raise ArtifactNotFound(f"No artifact for contract '{name}' under {self.artifacts_dir}")
        if len(candidates) > 1:
            raise ArtifactError(f"Contract name '{name}' is ambiguous: {', '.join(candidates)}")

        artifact = load_artifact(candidates[0], name=name)
        logger.debug(f"Resolved {name} -> {artifact.path}")
        self._cache[name] = artifact
        return artifact
