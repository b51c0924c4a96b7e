"""
chronobranch runtime - the branch/merge execution engine.

This module provides:
- Interpreter: Runs programs statement by statement
- Value: Immutable runtime values with type metadata
- TimelineStore: Append-only, per-variable ledger of bindings
- BranchManager / MergeResolver: Branch, potential and merge bookkeeping
- ExecutionContext: Routes reads/writes to the timeline or a potential
- Provenance: Run metadata for audit trails
"""

from .values import (
    Value,
    int_val,
    float_val,
    bool_val,
    string_val,
    list_val,
    set_val,
    potential_marker,
    list_push,
    set_insert,
    format_value,
    to_plain,
    from_plain,
    wrap_python,
)

from .numeric import (
    NumericPolicy,
    Arithmetic,
)

from .timeline import (
    TimelineEntry,
    TimelineStore,
)

from .branches import (
    Branch,
    BranchStatus,
    BranchManager,
    Potential,
    PotentialStatus,
)

from .merge import (
    MergeResolver,
    StaleMergePolicy,
)

from .context import (
    ExecutionContext,
    PotentialFrame,
    create_context,
)

from .io import (
    EXHAUSTED,
    InputSource,
    OutputSink,
    ConsoleInput,
    ScriptedInput,
    ConsoleOutput,
    CollectingOutput,
    coerce_input,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    execute,
    compile_and_run,
)

from .provenance import (
    Provenance,
    create_provenance,
    compute_source_signature,
    verify_source_signature,
)

__all__ = [
    # Values
    'Value',
    'int_val',
    'float_val',
    'bool_val',
    'string_val',
    'list_val',
    'set_val',
    'potential_marker',
    'list_push',
    'set_insert',
    'format_value',
    'to_plain',
    'from_plain',
    'wrap_python',

    # Numeric policy
    'NumericPolicy',
    'Arithmetic',

    # Timeline
    'TimelineEntry',
    'TimelineStore',

    # Branches and merges
    'Branch',
    'BranchStatus',
    'BranchManager',
    'Potential',
    'PotentialStatus',
    'MergeResolver',
    'StaleMergePolicy',

    # Context
    'ExecutionContext',
    'PotentialFrame',
    'create_context',

    # Collaborators
    'EXHAUSTED',
    'InputSource',
    'OutputSink',
    'ConsoleInput',
    'ScriptedInput',
    'ConsoleOutput',
    'CollectingOutput',
    'coerce_input',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'execute',
    'compile_and_run',

    # Provenance
    'Provenance',
    'create_provenance',
    'compute_source_signature',
    'verify_source_signature',
]
