"""Account snapshot synthesis."""

from .snapshot import (
    DeserializationMode,
    DeserializationStep,
    FuzzingErrorKind,
    SnapshotAlias,
    SnapshotDescriptor,
    SnapshotField,
    SnapshotGenerator,
    build_snapshot_descriptor,
    generate_snapshots_code,
)
from .render import render_program_snapshots
