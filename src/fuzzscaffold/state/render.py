"""
Rust text for account snapshots.

Every function returns plain text built line by line; the output is
byte-identical for identical input.
"""

from typing import List

from ..config import GeneratorConfig
from .snapshot import (
    DeserializationMode,
    DeserializationStep,
    FuzzingErrorKind,
    SnapshotAlias,
    SnapshotDescriptor,
)


INDENT = "    "
PHANTOM = "core::marker::PhantomData"


def fuzzing_error(kind: FuzzingErrorKind, field: str) -> str:
    return f'FuzzingError::{kind.value}("{field}".to_string())'


def render_use_statements(config: GeneratorConfig) -> str:
    return "\n".join([
        f"use {config.client_crate}::anchor_lang::{{prelude::*, self}};",
        f"use {config.client_crate}::fuzzing::FuzzingError;",
        "",
    ])


def render_snapshot_struct(descriptor: SnapshotDescriptor) -> str:
    if not descriptor.fields:
        return (
            f"pub struct {descriptor.name}<'info> {{\n"
            f"{INDENT}_marker: {PHANTOM}<&'info ()>,\n"
            "}\n"
        )
    lines = [f"pub struct {descriptor.name}<'info> {{"]
    for f in descriptor.fields:
        lines.append(f"{INDENT}pub {f.name}: {f.type_text},")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _next_slot(name: str) -> List[str]:
    return [
        "accounts_iter",
        ".next()",
        f".ok_or({fuzzing_error(FuzzingErrorKind.NOT_ENOUGH_ACCOUNTS, name)})?",
        ".as_ref()",
    ]


def render_step(step: DeserializationStep, config: GeneratorConfig) -> List[str]:
    """Statements binding one field, indented for the deserializer body."""
    name = step.field
    sentinel = f".filter(|acc| acc.key() != {config.program_id_const})"
    not_found = f".ok_or({fuzzing_error(FuzzingErrorKind.ACCOUNT_NOT_FOUND, name)})?"
    cannot = fuzzing_error(FuzzingErrorKind.CANNOT_DESERIALIZE_ACCOUNT, name)

    if step.mode == DeserializationMode.PLACEHOLDER:
        return [f"let {name} = todo!();"]

    if step.mode == DeserializationMode.RAW:
        chain = _next_slot(name) + [sentinel if step.optional else not_found]
        header = f"let {name} = "

    elif step.mode == DeserializationMode.UNCHECKED:
        if step.optional:
            chain = _next_slot(name) + [sentinel, f".map({step.method})"]
        else:
            chain = _next_slot(name) + [f".map({step.method})", not_found]
        header = f"let {name} = "

    elif not step.optional:
        chain = _next_slot(name) + [
            f".map({step.method})",
            not_found,
            f".map_err(|_| {cannot})?",
        ]
        header = f"let {name}: {step.return_type} = "

    else:
        not_provided = fuzzing_error(FuzzingErrorKind.OPTIONAL_ACCOUNT_NOT_PROVIDED, name)
        chain = _next_slot(name) + [
            ".map(|acc| {",
            f"{INDENT}if acc.key() != {config.program_id_const} {{",
            f"{INDENT * 2}{step.method}(acc)",
            f"{INDENT * 3}.map_err(|_| {cannot})",
            f"{INDENT}}} else {{",
            f"{INDENT * 2}Err({not_provided})",
            f"{INDENT}}}",
            "})",
            ".transpose()",
            ".or_else(|e| match e {",
            f"{INDENT}FuzzingError::{FuzzingErrorKind.OPTIONAL_ACCOUNT_NOT_PROVIDED.value}(_) => Ok(None),",
            f"{INDENT}e => Err(e),",
            "})?",
        ]
        header = f"let {name}: Option<{step.return_type}> = "

    lines = [header + chain[0]]
    lines.extend(INDENT + part for part in chain[1:])
    lines[-1] += ";"
    return lines


def render_deserializer(descriptor: SnapshotDescriptor, config: GeneratorConfig) -> str:
    """`impl` block with `deserialize_option`, consuming slots in field order."""
    body = []
    if descriptor.slots:
        body.append("let mut accounts_iter = accounts.iter();")
        body.append("")
    for step in descriptor.plan:
        body.extend(render_step(step, config))
        body.append("")

    if descriptor.fields:
        body.append("Ok(Self {")
        body.extend(f"{INDENT}{f.name}," for f in descriptor.fields)
        body.append("})")
    else:
        body += ["Ok(Self {", f"{INDENT}_marker: {PHANTOM},", "})"]

    lines = [
        f"impl<'info> {descriptor.name}<'info> {{",
        f"{INDENT}pub fn deserialize_option(",
        f"{INDENT * 2}accounts: &'info mut [Option<AccountInfo<'info>>],",
        f"{INDENT}) -> core::result::Result<Self, FuzzingError> {{",
    ]
    lines.extend((INDENT * 2 + line) if line else "" for line in body)
    lines.append(f"{INDENT}}}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_alias(alias: SnapshotAlias) -> str:
    return f"pub type {alias.name}<'info> = {alias.target}<'info>;\n"


def render_program_snapshots(
    descriptors: List[SnapshotDescriptor],
    aliases: List[SnapshotAlias],
    config: GeneratorConfig,
) -> str:
    """Preamble, then every struct, every impl and every alias of one program."""
    parts = [render_use_statements(config)]
    parts.extend(render_snapshot_struct(d) for d in descriptors)
    parts.extend(render_deserializer(d, config) for d in descriptors)
    parts.extend(render_alias(a) for a in aliases)
    return "\n".join(parts)
