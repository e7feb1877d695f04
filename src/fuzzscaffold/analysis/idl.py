"""
IDL construction from analyzed program sources.
"""

import json
from pathlib import Path
from typing import Iterable, Optional, Union

from .models import AccountGroupIdl, Idl, InstructionIdl, ProgramIdl
from .naming import Name
from .source_analyzer import ProgramSource, SourceAnalyzer


def build_program_idl(source: ProgramSource) -> ProgramIdl:
    """Turn analyzer output into the IDL consumed by the generators."""
    pairs = []
    for handler in source.handlers:
        ctx = source.context_for(handler)
        instruction = InstructionIdl(
            name=Name(handler.name),
            parameters=list(handler.parameters),
        )
        group = AccountGroupIdl(
            name=ctx.name,
            identity=ctx.identity,
            fields=list(ctx.fields),
        )
        pairs.append((instruction, group))

    return ProgramIdl(
        name=Name(source.name),
        program_id=source.program_id,
        instruction_account_pairs=pairs,
    )


def build_idl(sources: Iterable[ProgramSource]) -> Idl:
    """IDL of several programs, kept in the given order."""
    return Idl(programs=[build_program_idl(s) for s in sources])


def parse_to_idl_program(
    code: str,
    entry_code: Optional[str] = None,
    name: Optional[str] = None,
) -> ProgramIdl:
    """Analyze one program's source and build its IDL."""
    source = SourceAnalyzer().analyze(code, entry_code=entry_code, name=name)
    return build_program_idl(source)


def load_program_idl(
    path: Union[str, Path],
    entry_path: Optional[Union[str, Path]] = None,
    name: Optional[str] = None,
) -> ProgramIdl:
    """Read an expanded source file (and optional entry file) from disk."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    code = path.read_text()

    entry_code = None
    if entry_path is not None:
        entry_path = Path(entry_path)
        if not entry_path.exists():
            raise FileNotFoundError(f"Entry file not found: {entry_path}")
        entry_code = entry_path.read_text()

    return parse_to_idl_program(code, entry_code=entry_code, name=name)


def export_idl(idl: Idl, path: Union[str, Path], indent: int = 2) -> None:
    """Write the IDL as JSON."""
    with open(path, "w") as f:
        json.dump(idl.to_dict(), f, indent=indent)
