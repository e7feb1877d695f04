"""
Analysis module for parsing and understanding Anchor programs.
"""

from .models import (
    AccountFieldDescriptor,
    AccountGroupIdl,
    AccountKind,
    Idl,
    InstructionIdl,
    ProgramIdl,
)
from .naming import Name
from .source_analyzer import SourceAnalyzer, ProgramSource, StructIndex
from .idl import build_idl, build_program_idl, export_idl, load_program_idl, parse_to_idl_program

__all__ = [
    "AccountFieldDescriptor",
    "AccountGroupIdl",
    "AccountKind",
    "Idl",
    "InstructionIdl",
    "ProgramIdl",
    "Name",
    "SourceAnalyzer",
    "ProgramSource",
    "StructIndex",
    "build_idl",
    "build_program_idl",
    "export_idl",
    "load_program_idl",
    "parse_to_idl_program",
]
