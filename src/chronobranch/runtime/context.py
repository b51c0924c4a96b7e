"""
Execution context for the chronobranch interpreter.

The context is the program's environment: it routes reads and writes of a
variable either to the shared timeline or, inside a potential, to that
potential's private working copy of the branch target.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from contextlib import contextmanager
import logging

from .values import Value, format_value
from .timeline import TimelineStore
from .branches import Branch, BranchManager, Potential
from .merge import MergeResolver, StaleMergePolicy
from .io import InputSource, OutputSink
from ..errors import (
    DiagnosticCollector, TypeMismatchError, UnknownBranchError, DuplicateBranchError,
    UnknownPotentialError,
)

logger = logging.getLogger(__name__)


@dataclass
class PotentialFrame:
    """A potential being explored; its branch target resolves to the private copy."""
    branch: Branch
    potential: Potential

    @property
    def target(self) -> str:
        return self.branch.target


@dataclass
class ExecutionContext:
    """
    The full execution state of one run.

    Tracks:
    - The shared timeline and the branch/merge machinery over it
    - The stack of potentials currently being explored
    - Branch labels visible to merge/abort
    - Diagnostics (errors/warnings)
    """
    store: TimelineStore = field(default_factory=TimelineStore)
    stale_merge: StaleMergePolicy = StaleMergePolicy.COMMIT

    # Diagnostics
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)

    # Source tracking for error messages
    source_lines: List[str] = field(default_factory=list)

    # Everything handed to the output collaborator, in order
    outputs: List[Value] = field(default_factory=list)

    # Collaborators for `input` and `print`
    input_source: Optional[InputSource] = None
    output_sink: Optional[OutputSink] = None

    frames: List[PotentialFrame] = field(default_factory=list)
    labels: Dict[str, Branch] = field(default_factory=dict)

    def __post_init__(self):
        self.branches = BranchManager(self.store)
        self.resolver = MergeResolver(self.store, self.stale_merge, self.diagnostics)

    # -- environment --------------------------------------------------------

    def read(self, name: str) -> Value:
        """Current value of ``name`` as seen from the innermost potential."""
        frame = self._frame_for(name)
        if frame is not None:
            return frame.potential.private_value
        return self.store.read(name)

    def write(self, name: str, value: Value) -> Optional[int]:
        """
        Bind ``value`` to ``name``.

        Returns the timeline index written, or None when the write went to a
        potential's private copy.
        """
        frame = self._frame_for(name)
        if frame is None:
            return self.store.write(name, value)
        if not value.type.is_bindable:
            raise TypeMismatchError(
                f"cannot bind {format_value(value)} to '{name}'", variable=name,
            )
        frame.potential.rebind(value)
        logger.debug("write %s (branch #%d potential %d, private) = %s",
                     name, frame.branch.id, frame.potential.ordinal, value)
        return None

    def is_bound(self, name: str) -> bool:
        return self._frame_for(name) is not None or self.store.is_bound(name)

    @property
    def in_potential(self) -> bool:
        return bool(self.frames)

    @contextmanager
    def enter(self, branch: Branch, ordinal: int):
        """
        Context manager to run code inside one potential of ``branch``.

        Usage:
            with ctx.enter(branch, 1) as potential:
                ctx.write(branch.target, int_val(5))   # private to potential 1
        """
        potential = branch.potential(ordinal)
        if potential is None or not potential.is_pending:
            raise UnknownPotentialError(
                f"cannot enter potential {ordinal} of branch '{branch.label}'",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )
        frame = PotentialFrame(branch, potential)
        self.frames.append(frame)
        logger.debug("enter branch #%d '%s' potential %d", branch.id, branch.label, ordinal)
        try:
            yield potential
        finally:
            self.frames.pop()

    def _frame_for(self, name: str) -> Optional[PotentialFrame]:
        for frame in reversed(self.frames):
            if frame.target == name:
                return frame
        return None

    # -- branch labels ------------------------------------------------------

    def open_branch(self, target: str, potential_count: int, label: Optional[str] = None) -> Branch:
        """
        Open a branch through the manager and register its label.

        Inside a potential exploring ``target`` the branch forks that
        potential's private copy, and its merge writes back there.
        """
        label = label or target
        existing = self.labels.get(label)
        if existing is not None and existing.is_open:
            raise DuplicateBranchError(
                f"branch '{label}' is already open (on '{existing.target}')",
                variable=target, branch=label,
                hints=[f"merge or abort '{label}' first, or give this branch another label with 'as'"],
            )
        frame = self._frame_for(target)
        branch = self.branches.open(
            target, potential_count, label=label,
            origin=frame.potential if frame is not None else None,
        )
        self.labels[label] = branch
        return branch

    def branch_for(self, label: str) -> Branch:
        """The most recent branch carrying ``label``."""
        branch = self.labels.get(label)
        if branch is None:
            raise UnknownBranchError(
                f"no branch labelled '{label}'",
                branch=label,
                hints=["a branch is labelled with its target name unless 'as LABEL' is given"],
            )
        return branch

    def merge(self, label: str, ordinal: Optional[int] = None) -> Optional[int]:
        return self.resolver.merge(self.branch_for(label), ordinal)

    def abort(self, label: str) -> None:
        self.resolver.abort(self.branch_for(label))

    # -- diagnostics --------------------------------------------------------

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    @property
    def has_errors(self) -> bool:
        return self.diagnostics.has_errors

    @property
    def has_warnings(self) -> bool:
        return self.diagnostics.has_warnings


def create_context(
    source: str = "",
    stale_merge: StaleMergePolicy = StaleMergePolicy.COMMIT,
    store: Optional[TimelineStore] = None,
    input_source: Optional[InputSource] = None,
    output_sink: Optional[OutputSink] = None,
) -> ExecutionContext:
    """
    Create a fresh execution context.

    Args:
        source: The source code (for error messages)
        stale_merge: Policy for merges whose target moved on after the fork
        store: An existing timeline to run against (a new one by default)
        input_source: Where `input` reads from
        output_sink: Where `print` writes to
    """
    return ExecutionContext(
        store=store if store is not None else TimelineStore(),
        stale_merge=stale_merge,
        source_lines=source.split('\n') if source else [],
        input_source=input_source,
        output_sink=output_sink,
    )
