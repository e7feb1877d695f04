"""Account snapshot synthesis: descriptors and per-program deduplication."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..analysis.models import AccountFieldDescriptor, AccountGroupIdl, AccountKind, Idl, ProgramIdl
from ..config import GeneratorConfig


class FuzzingErrorKind(Enum):
    """FuzzingError variants raised by the generated deserializers."""
    NOT_ENOUGH_ACCOUNTS = "NotEnoughAccounts"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    CANNOT_DESERIALIZE_ACCOUNT = "CannotDeserializeAccount"
    OPTIONAL_ACCOUNT_NOT_PROVIDED = "OptionalAccountNotProvided"


class DeserializationMode(Enum):
    TYPED = "typed"
    RAW = "raw"  # AccountInfo handle passed through
    UNCHECKED = "unchecked"
    PLACEHOLDER = "placeholder"  # composite, implemented by hand


_ACCOUNTS = "anchor_lang::accounts"

UNCHECKED_DESERIALIZER = f"{_ACCOUNTS}::unchecked_account::UncheckedAccount::try_from"


def typed_deserializer(desc: AccountFieldDescriptor) -> Tuple[str, str]:
    """(return type, fully qualified deserialization function) of a leaf account."""
    kind = desc.kind
    inner = desc.inner_type
    if kind == AccountKind.SYSTEM_ACCOUNT:
        return "SystemAccount<'_>", f"{_ACCOUNTS}::system_account::SystemAccount::try_from"
    if kind == AccountKind.SYSVAR:
        return f"Sysvar<{inner}>", f"{_ACCOUNTS}::sysvar::Sysvar::from_account_info"
    if kind == AccountKind.SIGNER:
        return "Signer<'_>", f"{_ACCOUNTS}::signer::Signer::try_from"
    if kind == AccountKind.TYPED_ACCOUNT and desc.is_interface:
        path = f"{_ACCOUNTS}::interface_account::InterfaceAccount"
        return f"{path}<{inner}>", f"{path}::try_from"
    if kind == AccountKind.TYPED_ACCOUNT:
        path = f"{_ACCOUNTS}::account::Account"
        return f"{path}<{inner}>", f"{path}::try_from"
    if kind == AccountKind.ACCOUNT_LOADER:
        path = f"{_ACCOUNTS}::account_loader::AccountLoader"
        return f"{path}<{inner}>", f"{path}::try_from"
    if kind == AccountKind.PROGRAM:
        path = f"{_ACCOUNTS}::program::Program"
        return f"{path}<{inner}>", f"{path}::try_from"
    if kind == AccountKind.INTERFACE:
        path = f"{_ACCOUNTS}::interface::Interface"
        return f"{path}<{inner}>", f"{path}::try_from"
    raise ValueError(f"{kind.value} accounts have no typed deserializer")


@dataclass
class DeserializationStep:
    """How one field is pulled off the account cursor."""
    field: str
    mode: DeserializationMode
    optional: bool
    return_type: Optional[str] = None
    method: Optional[str] = None

    @property
    def consumes_slot(self) -> bool:
        return self.mode != DeserializationMode.PLACEHOLDER


@dataclass
class SnapshotField:
    name: str
    type_text: str


@dataclass
class SnapshotDescriptor:
    """A generated snapshot struct and its deserialization plan."""
    name: str
    identity: str
    context_name: str
    fields: List[SnapshotField] = field(default_factory=list)
    plan: List[DeserializationStep] = field(default_factory=list)
    composite_fields: List[AccountFieldDescriptor] = field(default_factory=list)

    @property
    def slots(self) -> int:
        """Cursor slots the deserializer consumes."""
        return sum(1 for step in self.plan if step.consumes_slot)


@dataclass
class SnapshotAlias:
    name: str
    target: str


def snapshot_field_type(desc: AccountFieldDescriptor) -> str:
    """Field type inside the snapshot struct (see the optional x raw handle table)."""
    ty = desc.account_type
    if desc.is_optional and desc.is_raw_handle:
        return f"Option<&'info {ty}>"
    if desc.is_optional:
        return f"Option<{ty}>"
    if desc.is_raw_handle:
        return f"&'info {ty}"
    return ty


def deserialization_step(desc: AccountFieldDescriptor) -> DeserializationStep:
    if desc.is_composite:
        return DeserializationStep(desc.name, DeserializationMode.PLACEHOLDER, desc.is_optional)
    if desc.kind == AccountKind.RAW_HANDLE:
        return DeserializationStep(desc.name, DeserializationMode.RAW, desc.is_optional)
    if desc.kind == AccountKind.UNCHECKED_ACCOUNT:
        return DeserializationStep(
            desc.name,
            DeserializationMode.UNCHECKED,
            desc.is_optional,
            method=UNCHECKED_DESERIALIZER,
        )
    return_type, method = typed_deserializer(desc)
    return DeserializationStep(
        desc.name,
        DeserializationMode.TYPED,
        desc.is_optional,
        return_type=return_type,
        method=method,
    )


def build_snapshot_descriptor(name: str, group: AccountGroupIdl) -> SnapshotDescriptor:
    """Snapshot struct + plan for one context, fields kept in source order."""
    return SnapshotDescriptor(
        name=name,
        identity=group.identity,
        context_name=group.name,
        fields=[SnapshotField(f.name, snapshot_field_type(f)) for f in group.fields],
        plan=[deserialization_step(f) for f in group.fields],
        composite_fields=[f for f in group.fields if f.is_composite],
    )


def snapshot_name(instruction_name: str) -> str:
    return f"{instruction_name}Snapshot"


class SnapshotGenerator:
    """
    Generates `accounts_snapshots.rs` from the IDL.

    Contexts are deduplicated per program: the first instruction (in IDL
    order) using a context type gets the struct and its deserializer, every
    later one only a type alias.
    """

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()
        self.warnings: List[str] = []

    def build(self, program: ProgramIdl) -> Tuple[List[SnapshotDescriptor], List[SnapshotAlias]]:
        """Descriptors and aliases of one program."""
        unique_ctxs: Dict[str, str] = {}
        descriptors: List[SnapshotDescriptor] = []
        aliases: List[SnapshotAlias] = []

        for ix, group in program.instruction_account_pairs:
            name = snapshot_name(ix.name.upper_camel_case)
            canonical = unique_ctxs.get(group.identity)
            if canonical is not None:
                aliases.append(SnapshotAlias(name, canonical))
                continue

            descriptor = build_snapshot_descriptor(name, group)
            for f in descriptor.composite_fields:
                self.warnings.append(
                    f"The context `{group.name}` has a field named `{f.name}` of composite type "
                    f"`{f.declared_type}`. The automatic deserialization of composite types is "
                    f"currently not supported. You will have to implement it manually in the "
                    f"generated `{self.config.snapshots_file}` file. The field deserialization "
                    f"was replaced by a `todo!()` macro. Also, you might want to adapt the "
                    f"corresponding FuzzInstruction variants in "
                    f"`{self.config.fuzz_instructions_file}` file."
                )
            descriptors.append(descriptor)
            unique_ctxs[group.identity] = name

        return descriptors, aliases

    def generate_program(self, program: ProgramIdl) -> str:
        from .render import render_program_snapshots

        descriptors, aliases = self.build(program)
        return render_program_snapshots(descriptors, aliases, self.config)

    def generate(self, idl: Idl) -> str:
        """Snapshot code for every program, concatenated in IDL order."""
        return "".join(self.generate_program(p) for p in idl.programs)


def generate_snapshots_code(idl: Idl, config: Optional[GeneratorConfig] = None) -> Tuple[str, List[str]]:
    """Return (generated code, warnings)."""
    generator = SnapshotGenerator(config)
    code = generator.generate(idl)
    return code, generator.warnings
