"""
Data models for program analysis.

These models describe an Anchor program as recovered from its source: the
instructions, the accounts each one takes, and the classification of every
account field. Both code generators consume them.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple
from enum import Enum

from .naming import Name


class AccountKind(Enum):
    """Closed classification of a context struct field."""
    SYSTEM_ACCOUNT = "system_account"
    SYSVAR = "sysvar"
    SIGNER = "signer"
    PROGRAM = "program"
    INTERFACE = "interface"
    TYPED_ACCOUNT = "typed_account"  # Account<T> / InterfaceAccount<T>
    ACCOUNT_LOADER = "account_loader"
    UNCHECKED_ACCOUNT = "unchecked_account"
    RAW_HANDLE = "raw_handle"  # AccountInfo
    COMPOSITE = "composite"  # nested account group


@dataclass
class AccountFieldDescriptor:
    """A classified field of a context struct."""
    name: str
    declared_type: str  # As written, wrappers included
    account_type: str  # Option<> and Box<> removed
    kind: AccountKind
    inner_type: Optional[str] = None  # T of Account<'info, T>, sysvar id, ...
    is_interface: bool = False  # InterfaceAccount rather than Account

    declared_optional: bool = False
    is_boxed: bool = False

    # Lifecycle constraints from #[account(...)]
    has_init: bool = False
    has_close: bool = False

    @property
    def is_optional(self) -> bool:
        # init/close accounts can't exist in both the pre and post snapshot
        return self.declared_optional or self.has_init or self.has_close

    @property
    def is_raw_handle(self) -> bool:
        return self.kind == AccountKind.RAW_HANDLE

    @property
    def is_composite(self) -> bool:
        return self.kind == AccountKind.COMPOSITE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.declared_type,
            "kind": self.kind.value,
            "inner_type": self.inner_type,
            "optional": self.is_optional,
            "boxed": self.is_boxed,
            "init": self.has_init,
            "close": self.has_close,
        }


@dataclass
class InstructionIdl:
    """An instruction handler of the program."""
    name: Name
    parameters: List[Tuple[str, str]] = field(default_factory=list)  # (name, type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.raw,
            "parameters": [{"name": n, "type": t} for n, t in self.parameters],
        }


@dataclass
class AccountGroupIdl:
    """The accounts (context struct) an instruction takes."""
    name: str  # Context struct name
    identity: str  # Context type as written in Context<...>
    fields: List[AccountFieldDescriptor] = field(default_factory=list)

    @property
    def accounts(self) -> List[Tuple[str, str]]:
        """(account name, declared type) in declaration order."""
        return [(f.name, f.declared_type) for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "context": self.identity,
            "accounts": [f.to_dict() for f in self.fields],
        }


@dataclass
class ProgramIdl:
    """Complete description of one program."""
    name: Name
    program_id: Optional[str] = None
    instruction_account_pairs: List[Tuple[InstructionIdl, AccountGroupIdl]] = field(default_factory=list)

    @property
    def instructions(self) -> List[InstructionIdl]:
        return [ix for ix, _ in self.instruction_account_pairs]

    def get_instruction(self, name: str) -> Optional[Tuple[InstructionIdl, AccountGroupIdl]]:
        """Get instruction/account group pair by instruction name."""
        for ix, group in self.instruction_account_pairs:
            if ix.name.raw == name or ix.name.upper_camel_case == name:
                return ix, group
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.raw,
            "program_id": self.program_id,
            "instructions": [
                {**ix.to_dict(), "accounts": group.to_dict()}
                for ix, group in self.instruction_account_pairs
            ],
        }

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            f"Program: {self.name}",
            f"Instructions: {len(self.instruction_account_pairs)}",
        ]
        for ix, group in self.instruction_account_pairs:
            lines.append(f"  • {ix.name} ({group.name}, {len(group.fields)} accounts)")
        return "\n".join(lines)


@dataclass
class Idl:
    """All programs of a workspace."""
    programs: List[ProgramIdl] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"programs": [p.to_dict() for p in self.programs]}
