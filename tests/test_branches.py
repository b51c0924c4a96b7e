"""
Tests for the branch manager and execution-context routing of potentials.
"""

import pytest

from chronobranch.errors import (
    UnboundVariableError, InvalidBranchArityError, UnknownPotentialError,
    TypeMismatchError, UnknownBranchError, DuplicateBranchError,
)
from chronobranch.runtime import (
    BranchStatus, PotentialStatus, int_val, potential_marker,
)


class TestOpen:
    """Test opening branches."""

    def test_open_creates_pending_potentials(self, manager, bound_x):
        branch = manager.open("x", 3)
        assert branch.status == BranchStatus.OPEN
        assert branch.target == "x"
        assert branch.label == "x"
        assert branch.opened_at == 0
        assert [p.ordinal for p in branch.potentials] == [1, 2, 3]
        assert all(p.status == PotentialStatus.PENDING for p in branch.potentials)

    def test_potentials_fork_from_same_value(self, manager, bound_x):
        branch = manager.open("x", 2)
        assert all(p.private_value == int_val(3) for p in branch.potentials)

    def test_final_value_starts_as_marker(self, manager, bound_x):
        branch = manager.open("x", 2)
        assert branch.potential(2).final_value == potential_marker(branch.id, 2)

    def test_branch_ids_in_opening_order(self, manager, bound_x):
        first = manager.open("x", 1)
        second = manager.open("x", 1, label="again")
        assert (first.id, second.id) == (1, 2)
        assert manager.get(2) is second
        assert manager.all() == [first, second]

    def test_potential_ids_unique(self, manager, bound_x):
        a = manager.open("x", 2)
        b = manager.open("x", 2)
        ids = [p.id for p in a.potentials + b.potentials]
        assert len(set(ids)) == 4

    def test_open_does_not_write(self, manager, bound_x):
        manager.open("x", 2)
        assert bound_x.latest_index("x") == 0

    def test_open_unbound(self, manager):
        with pytest.raises(UnboundVariableError) as exc_info:
            manager.open("ghost", 2)
        assert exc_info.value.variable == "ghost"

    @pytest.mark.parametrize("count", [0, -1])
    def test_open_invalid_arity(self, manager, bound_x, count):
        with pytest.raises(InvalidBranchArityError) as exc_info:
            manager.open("x", count)
        assert exc_info.value.kind == "InvalidBranchArity"

    def test_custom_reader(self, manager, bound_x):
        branch = manager.open("x", 1, reader=lambda name: int_val(42))
        assert branch.potential(1).private_value == int_val(42)


class TestResolve:
    """Test resolving and failing potentials."""

    def test_resolve_records_value(self, manager, bound_x):
        branch = manager.open("x", 2)
        manager.resolve_potential(branch, 2, int_val(8))
        potential = branch.potential(2)
        assert potential.status == PotentialStatus.RESOLVED
        assert potential.final_value == int_val(8)
        assert [p.ordinal for p in branch.pending()] == [1]

    def test_resolve_out_of_range(self, manager, bound_x):
        branch = manager.open("x", 2)
        with pytest.raises(UnknownPotentialError) as exc_info:
            manager.resolve_potential(branch, 3, int_val(1))
        assert exc_info.value.ordinal == 3

    def test_resolve_twice(self, manager, bound_x):
        branch = manager.open("x", 1)
        manager.resolve_potential(branch, 1, int_val(1))
        with pytest.raises(UnknownPotentialError):
            manager.resolve_potential(branch, 1, int_val(2))

    def test_resolve_on_closed_branch(self, manager, resolver, bound_x):
        branch = manager.open("x", 2)
        resolver.abort(branch)
        with pytest.raises(UnknownPotentialError):
            manager.resolve_potential(branch, 1, int_val(1))

    def test_fail_potential(self, manager, bound_x):
        branch = manager.open("x", 2)
        error = TypeMismatchError("boom")
        manager.fail_potential(branch, 1, error)
        assert branch.potential(1).status == PotentialStatus.FAILED
        assert branch.potential(1).error is error

    def test_open_branches(self, manager, resolver, bound_x):
        a = manager.open("x", 1)
        b = manager.open("x", 1)
        resolver.abort(a)
        assert manager.open_branches() == [b]


class TestContextRouting:
    """Test how the execution context routes reads and writes."""

    def test_target_is_private_inside_potential(self, ctx):
        ctx.write("x", int_val(3))
        branch = ctx.open_branch("x", 2)
        with ctx.enter(branch, 1):
            ctx.write("x", int_val(100))
            assert ctx.read("x") == int_val(100)
        assert ctx.read("x") == int_val(3)
        assert ctx.store.latest_index("x") == 0
        assert branch.potential(1).private_value == int_val(100)
        assert branch.potential(2).private_value == int_val(3)

    def test_private_write_returns_none(self, ctx):
        ctx.write("x", int_val(3))
        branch = ctx.open_branch("x", 1)
        with ctx.enter(branch, 1):
            assert ctx.write("x", int_val(4)) is None

    def test_other_names_are_shared(self, ctx):
        ctx.write("x", int_val(3))
        branch = ctx.open_branch("x", 1)
        with ctx.enter(branch, 1):
            ctx.write("y", int_val(7))
        assert ctx.store.read("y") == int_val(7)

    def test_innermost_frame_wins(self, ctx):
        ctx.write("x", int_val(1))
        outer = ctx.open_branch("x", 1, label="outer")
        with ctx.enter(outer, 1):
            ctx.write("x", int_val(2))
            inner = ctx.open_branch("x", 1, label="inner")
            assert inner.potential(1).private_value == int_val(2)
            with ctx.enter(inner, 1):
                ctx.write("x", int_val(3))
                assert ctx.read("x") == int_val(3)
            assert ctx.read("x") == int_val(2)

    def test_frame_popped_on_error(self, ctx):
        ctx.write("x", int_val(1))
        branch = ctx.open_branch("x", 1)
        with pytest.raises(RuntimeError):
            with ctx.enter(branch, 1):
                raise RuntimeError("stop")
        assert not ctx.in_potential

    def test_private_slot_rejects_marker(self, ctx):
        ctx.write("x", int_val(1))
        branch = ctx.open_branch("x", 1)
        with ctx.enter(branch, 1):
            with pytest.raises(TypeMismatchError):
                ctx.write("x", potential_marker(1, 1))

    def test_enter_unknown_potential(self, ctx):
        ctx.write("x", int_val(1))
        branch = ctx.open_branch("x", 1)
        with pytest.raises(UnknownPotentialError):
            with ctx.enter(branch, 2):
                pass

    def test_duplicate_open_label(self, ctx):
        ctx.write("x", int_val(1))
        ctx.open_branch("x", 1)
        with pytest.raises(DuplicateBranchError) as exc_info:
            ctx.open_branch("x", 2)
        assert exc_info.value.branch == "x"

    def test_label_reusable_after_close(self, ctx):
        ctx.write("x", int_val(1))
        first = ctx.open_branch("x", 1)
        ctx.abort("x")
        second = ctx.open_branch("x", 1)
        assert ctx.branch_for("x") is second
        assert first.status == BranchStatus.ABORTED

    def test_unknown_label(self, ctx):
        with pytest.raises(UnknownBranchError) as exc_info:
            ctx.branch_for("nope")
        assert exc_info.value.kind == "UnknownBranch"

    def test_private_writes_count_generations(self, ctx):
        ctx.write("x", int_val(1))
        branch = ctx.open_branch("x", 1)
        with ctx.enter(branch, 1) as potential:
            ctx.write("x", int_val(2))
            ctx.write("x", int_val(3))
        assert potential.generation == 2

    def test_branch_origin_follows_frames(self, ctx):
        ctx.write("x", int_val(1))
        ctx.write("y", int_val(1))
        outer = ctx.open_branch("x", 1, label="outer")
        assert outer.origin is None
        with ctx.enter(outer, 1) as potential:
            on_x = ctx.open_branch("x", 1, label="on_x")
            on_y = ctx.open_branch("y", 1, label="on_y")
        assert on_x.origin is potential
        assert on_y.origin is None

    def test_shared_branch_merged_inside_potential_writes_timeline(self, ctx):
        ctx.write("x", int_val(1))
        first = ctx.open_branch("x", 1, label="first")
        ctx.branches.resolve_potential(first, 1, int_val(5))
        second = ctx.open_branch("x", 1, label="second")
        with ctx.enter(second, 1) as potential:
            assert ctx.merge("first") == 1
            assert ctx.read("x") == int_val(1)
        assert ctx.store.read("x") == int_val(5)
        assert potential.generation == 0
