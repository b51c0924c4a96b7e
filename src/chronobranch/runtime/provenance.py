"""
Provenance tracking for chronobranch runs.

Captures what was run, with which settings, so a timeline dump can be traced
back to the program that produced it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
from datetime import datetime, timezone
import hashlib
import json


@dataclass
class Provenance:
    """
    Provenance information for one program run.

    - Reproducibility: the config needed to re-run
    - Change detection: the source signature
    - Summary: how much the run did
    """
    program: str
    source_signature: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    statements: int = 0
    branches: int = 0
    writes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run": {
                "program": self.program,
                "sourceSignature": self.source_signature,
                "timestamp": self.timestamp,
                "config": self.config,
            },
            "counts": {
                "statements": self.statements,
                "branches": self.branches,
                "writes": self.writes,
            },
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Provenance":
        """Create from dictionary."""
        run = data.get("run", {})
        counts = data.get("counts", {})
        return cls(
            program=run.get("program", ""),
            source_signature=run.get("sourceSignature", ""),
            config=run.get("config", {}),
            timestamp=run.get("timestamp", ""),
            statements=counts.get("statements", 0),
            branches=counts.get("branches", 0),
            writes=counts.get("writes", 0),
        )


def compute_source_signature(source: str) -> str:
    """
    Compute a signature for source code.

    Uses SHA-256 hash of the normalized source.
    """
    normalized = source.strip().replace('\r\n', '\n').replace('\r', '\n')
    return f"sha256:{hashlib.sha256(normalized.encode()).hexdigest()}"


def create_provenance(
    program: str,
    source: str = "",
    config: Dict[str, Any] = None,
    **counts: int,
) -> Provenance:
    """
    Create a Provenance record for a run.

    Args:
        program: Program name (usually the file name)
        source: Original source code (for signature)
        config: The settings the run used
        **counts: statements=, branches=, writes=
    """
    return Provenance(
        program=program,
        source_signature=compute_source_signature(source) if source else "",
        config=dict(config or {}),
        **counts,
    )


def verify_source_signature(source: str, signature: str) -> bool:
    """True if ``source`` still matches ``signature``."""
    return compute_source_signature(source) == signature
