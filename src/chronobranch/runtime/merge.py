"""
Merge resolution: collapse a branch into exactly one new binding.
"""

from enum import Enum
from typing import Callable, Optional
import logging

from .branches import Branch, BranchStatus, PotentialStatus
from .timeline import TimelineStore
from .values import Value
from ..errors import (
    DiagnosticCollector, BranchAlreadyClosedError, IncompletePotentialsError,
    UnknownPotentialError, StaleBranchError, warning_stale_merge,
)

logger = logging.getLogger(__name__)

Writer = Callable[[str, Value], Optional[int]]


class StaleMergePolicy(Enum):
    """What a merge does when its target was rewritten after the fork."""
    COMMIT = "commit"
    REJECT = "reject"

    @classmethod
    def parse(cls, text: str) -> "StaleMergePolicy":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown stale-merge policy '{text}' (expected one of: {choices})")


class MergeResolver:
    """
    Collapses branches.

    A merge writes the selected potential's terminal value once, so the
    target advances by exactly one index however many potentials there were.
    """

    def __init__(
        self,
        store: TimelineStore,
        stale_merge: StaleMergePolicy = StaleMergePolicy.COMMIT,
        diagnostics: Optional[DiagnosticCollector] = None,
    ):
        self.store = store
        self.stale_merge = stale_merge
        self.diagnostics = diagnostics

    def merge(
        self,
        branch: Branch,
        ordinal: Optional[int] = None,
        writer: Optional[Writer] = None,
    ) -> Optional[int]:
        """
        Commit potential ``ordinal`` of ``branch`` as the target's next value.

        ``ordinal`` may be omitted only for single-potential branches.
        The value goes back where the branch forked from: the shared timeline,
        or the private copy of the potential that opened it. Returns the index
        written, or None for a private copy (or a ``writer`` that stored the
        value somewhere other than the timeline).
        """
        self._require_open(branch, "merge")

        pending = branch.pending()
        if pending:
            ordinals = ", ".join(str(p.ordinal) for p in pending)
            raise IncompletePotentialsError(
                f"cannot merge branch '{branch.label}': potential(s) {ordinals} still pending",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )

        count = len(branch.potentials)
        if ordinal is None:
            if count != 1:
                raise UnknownPotentialError(
                    f"branch '{branch.label}' has {count} potentials; choose one",
                    variable=branch.target, branch=branch.label,
                    hints=[f"merge {branch.label} select K, with K in 1..{count}"],
                )
            ordinal = 1

        potential = branch.potential(ordinal)
        if potential is None:
            raise UnknownPotentialError(
                f"branch '{branch.label}' has no potential {ordinal} (it has {count})",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
            )
        if potential.status == PotentialStatus.FAILED:
            raise IncompletePotentialsError(
                f"potential {ordinal} of branch '{branch.label}' failed and has no value",
                variable=branch.target, branch=branch.label, ordinal=ordinal,
                hints=[f"select a resolved potential or 'abort {branch.label}'"],
            )

        self._check_stale(branch)

        if writer is not None:
            time = writer(branch.target, potential.final_value)
        else:
            time = self._commit(branch, potential.final_value)
        branch.close(BranchStatus.MERGED, selected=ordinal)
        logger.debug("merge branch #%d '%s' select %d -> %s@%s",
                     branch.id, branch.label, ordinal, branch.target,
                     "private" if time is None else time)
        return time

    def abort(self, branch: Branch) -> None:
        """Discard every potential of ``branch`` without writing."""
        self._require_open(branch, "abort")
        branch.close(BranchStatus.ABORTED)
        logger.debug("abort branch #%d '%s'", branch.id, branch.label)

    def _commit(self, branch: Branch, value: Value) -> Optional[int]:
        """Write to wherever the branch forked from: the store or its origin's copy."""
        if branch.origin is not None:
            branch.origin.rebind(value)
            return None
        return self.store.write(branch.target, value)

    def _require_open(self, branch: Branch, action: str) -> None:
        if not branch.is_open:
            raise BranchAlreadyClosedError(
                f"cannot {action} branch '{branch.label}': it is already {branch.status.value}",
                variable=branch.target, branch=branch.label,
            )

    def _check_stale(self, branch: Branch) -> None:
        origin = branch.origin
        if origin is not None:
            if not origin.is_pending:
                # Nowhere left to commit, whatever the policy.
                raise StaleBranchError(
                    f"branch '{branch.label}' forked '{branch.target}' inside "
                    f"{origin.describe()}, which is already {origin.status.value}",
                    variable=branch.target, branch=branch.label,
                    hints=[f"merge '{branch.label}' inside the potential that opened it, "
                           f"or abort it"],
                )
            latest = origin.generation
        else:
            latest = self.store.latest_index(branch.target)
        if latest is None or latest == branch.opened_at:
            return

        scope = None if origin is None else origin.describe()
        if self.stale_merge == StaleMergePolicy.REJECT:
            where = "the timeline" if scope is None else f"the private copy in {scope}"
            raise StaleBranchError(
                f"'{branch.target}' was rewritten in {where} after branch "
                f"'{branch.label}' forked it",
                variable=branch.target, branch=branch.label,
                hints=[f"abort '{branch.label}', or run with --stale-merge commit"],
            )
        logger.warning("stale merge of branch '%s': '%s' forked at %d, rewritten at %d%s",
                       branch.label, branch.target, branch.opened_at, latest,
                       "" if scope is None else f" ({scope})")
        if self.diagnostics is not None:
            self.diagnostics.add(
                warning_stale_merge(branch.label, branch.target, branch.opened_at, latest, scope)
            )
