"""
Branches and their potentials.

A branch forks one variable's future into N potentials. Each potential starts
from the same fork value, runs its own block against a private copy, and ends
Resolved (with a terminal value) or Failed. The merge resolver later picks
exactly one of them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

from .values import Value, format_value, potential_marker
from .timeline import TimelineStore
from ..errors import (
    ExecutionError, UnboundVariableError, InvalidBranchArityError,
    UnknownPotentialError,
)

logger = logging.getLogger(__name__)


class BranchStatus(Enum):
    OPEN = "open"
    MERGED = "merged"
    ABORTED = "aborted"


class PotentialStatus(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class Potential:
    """
    One hypothetical continuation of a branch.

    ``private_value`` is the working copy the potential's block reads and
    writes; ``final_value`` holds the marker until the potential resolves.
    ``generation`` counts writes to the private copy, so a branch forked from
    it can tell whether the copy moved on before that branch merged.
    """
    id: int
    branch_id: int
    ordinal: int
    private_value: Value
    final_value: Value
    status: PotentialStatus = PotentialStatus.PENDING
    error: Optional[ExecutionError] = None
    generation: int = 0

    @property
    def is_pending(self) -> bool:
        return self.status == PotentialStatus.PENDING

    def rebind(self, value: Value) -> None:
        self.private_value = value
        self.generation += 1

    def describe(self) -> str:
        return f"potential {self.ordinal} of branch #{self.branch_id}"


@dataclass
class Branch:
    """
    A fork point on ``target``.

    A branch opened on the shared timeline has no ``origin`` and
    ``opened_at`` is the target's latest index. A branch opened inside a
    potential exploring the same variable forks that potential's private
    copy: ``origin`` is the potential and ``opened_at`` its generation.
    """
    id: int
    label: str
    target: str
    opened_at: int
    potentials: List[Potential] = field(default_factory=list)
    status: BranchStatus = BranchStatus.OPEN
    selected: Optional[int] = None
    potential_count: int = 0
    origin: Optional[Potential] = None

    @property
    def is_open(self) -> bool:
        return self.status == BranchStatus.OPEN

    def potential(self, ordinal: int) -> Optional[Potential]:
        """The potential with this ordinal (1-based), or None."""
        if 1 <= ordinal <= len(self.potentials):
            return self.potentials[ordinal - 1]
        return None

    def pending(self) -> List[Potential]:
        return [p for p in self.potentials if p.is_pending]

    def close(self, status: BranchStatus, selected: Optional[int] = None) -> None:
        """Mark the branch closed and release its potentials."""
        self.status = status
        self.selected = selected
        self.potentials = []

    def describe(self) -> str:
        text = f"branch #{self.id} '{self.label}' on '{self.target}' ({self.status.value}"
        if self.selected is not None:
            text += f", selected {self.selected}"
        return text + ")"


class BranchManager:
    """
    Opens branches and tracks the status of their potentials.

    Usage:
        manager = BranchManager(store)
        branch = manager.open("x", 2)
        manager.resolve_potential(branch, 1, int_val(3))
    """

    def __init__(self, store: TimelineStore):
        self.store = store
        self._branches: Dict[int, Branch] = {}
        self._next_branch_id = 1
        self._next_potential_id = 1

    def open(
        self,
        name: str,
        potential_count: int,
        label: Optional[str] = None,
        reader: Optional[Callable[[str], Value]] = None,
        origin: Optional[Potential] = None,
    ) -> Branch:
        """
        Fork ``name`` into ``potential_count`` potentials.

        Args:
            name: Variable to branch on; must be bound
            potential_count: Number of potentials, at least 1
            label: Name merge/abort refer to (defaults to ``name``)
            reader: Where the fork value comes from when there is no origin
                (defaults to the store)
            origin: Pending potential whose private copy of ``name`` is being
                forked; the fork value and generation come from it

        Returns:
            The new Open branch
        """
        if potential_count < 1:
            raise InvalidBranchArityError(
                f"branch on '{name}' needs at least one potential, got {potential_count}",
                variable=name,
                branch=label or name,
            )
        if not self.store.is_bound(name):
            raise UnboundVariableError(
                f"cannot branch on '{name}': variable is not bound",
                variable=name,
                branch=label or name,
            )

        if origin is not None:
            fork_value = origin.private_value
            opened_at = origin.generation
        else:
            fork_value = (reader or self.store.read)(name)
            opened_at = self.store.latest_index(name)
        branch = Branch(
            id=self._next_branch_id,
            label=label or name,
            target=name,
            opened_at=opened_at,
            potential_count=potential_count,
            origin=origin,
        )
        self._next_branch_id += 1

        for ordinal in range(1, potential_count + 1):
            branch.potentials.append(Potential(
                id=self._next_potential_id,
                branch_id=branch.id,
                ordinal=ordinal,
                private_value=fork_value,
                final_value=potential_marker(branch.id, ordinal),
            ))
            self._next_potential_id += 1

        self._branches[branch.id] = branch
        logger.debug("open branch #%d '%s' on %s@%d%s = %s with %d potential(s)",
                     branch.id, branch.label, name, branch.opened_at,
                     "" if origin is None else f" ({origin.describe()})",
                     fork_value, potential_count)
        return branch

    def resolve_potential(self, branch: Branch, ordinal: int, final_value: Value) -> None:
        """Record the terminal value of a pending potential."""
        potential = self._pending_potential(branch, ordinal)
        potential.final_value = final_value
        potential.status = PotentialStatus.RESOLVED
        logger.debug("resolve branch #%d potential %d = %s",
                     branch.id, ordinal, format_value(final_value))

    def fail_potential(self, branch: Branch, ordinal: int, error: ExecutionError) -> None:
        """Mark a pending potential Failed, keeping the error that stopped it."""
        potential = self._pending_potential(branch, ordinal)
        potential.status = PotentialStatus.FAILED
        potential.error = error
        logger.warning("branch '%s' potential %d failed: %s",
                       branch.label, ordinal, error.diagnostic.message)

    def get(self, branch_id: int) -> Optional[Branch]:
        return self._branches.get(branch_id)

    def open_branches(self) -> List[Branch]:
        """Branches not yet merged or aborted, in opening order."""
        return [b for b in self._branches.values() if b.is_open]

    def all(self) -> List[Branch]:
        return list(self._branches.values())

    def _pending_potential(self, branch: Branch, ordinal: int) -> Potential:
        if not branch.is_open:
            raise UnknownPotentialError(
                f"branch '{branch.label}' is {branch.status.value}; its potentials are gone",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )
        potential = branch.potential(ordinal)
        if potential is None:
            raise UnknownPotentialError(
                f"branch '{branch.label}' has no potential {ordinal} "
                f"(it has {len(branch.potentials)})",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )
        if not potential.is_pending:
            raise UnknownPotentialError(
                f"potential {ordinal} of branch '{branch.label}' is already "
                f"{potential.status.value}",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )
        return potential
