"""
Fuzz Harness Generator: scaffolds `fuzz_instructions.rs` from the IDL.

The generated module is a starting point. Every place where the fuzzer needs
program knowledge (instruction data, accounts and signers, the
post-execution check) is left as a `todo!()` for the developer.
"""

from typing import Dict, List, Optional, Tuple

from ..analysis.models import AccountGroupIdl, Idl, InstructionIdl, ProgramIdl
from ..analysis.rust_syntax import PATH_TYPE_KINDS, TypeRef
from ..config import GeneratorConfig
from ..state.snapshot import snapshot_name
from .models import PLACEHOLDER, RoleRegistry, StorageStrategy


INDENT = "    "

ACCOUNT_ID = "AccountId"

FUZZ_INSTRUCTION_DERIVES = "Arbitrary, Clone, DisplayIx, FuzzTestExecutor, FuzzDeserialize"


def is_address_type(type_text: str) -> bool:
    """True for a plain `Pubkey` path (any prefix), not for `Option<Pubkey>` etc."""
    ty = TypeRef.parse(type_text)
    return ty.kind in PATH_TYPE_KINDS and ty.ident == "Pubkey"


def program_module_name(program: ProgramIdl) -> str:
    return program.name.snake_case.replace("-", "_")


def _block(lines: List[str], depth: int) -> List[str]:
    prefix = INDENT * depth
    return [prefix + line if line else "" for line in lines]


class FuzzHarnessGenerator:
    """
    Generates the fuzz instruction module of every program.

    `storage` binds account roles to a storage strategy; roles without a
    binding are emitted as `AccountsStorage<todo!()>`.
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        storage: Optional[Dict[str, StorageStrategy]] = None,
    ):
        self.config = config or GeneratorConfig()
        self.storage = dict(storage or {})

    def build_registry(self, program: ProgramIdl) -> RoleRegistry:
        """Account names of every context plus address-typed parameters."""
        registry = RoleRegistry()
        for ix, group in program.instruction_account_pairs:
            for name, _ in group.accounts:
                registry.add(name)
            for name, ty in ix.parameters:
                if is_address_type(ty):
                    registry.add(name)
        for role, strategy in self.storage.items():
            if role in registry:
                registry.bind(role, strategy)
        return registry

    def generate(self, idl: Idl) -> str:
        return "".join(self.generate_program(p) for p in idl.programs)

    def generate_program(self, program: ProgramIdl) -> str:
        module = program_module_name(program)
        registry = self.build_registry(program)

        body = [f"use crate::{self.config.snapshots_module}::*;", ""]
        body.extend(self._render_enum(program))
        for ix, group in program.instruction_account_pairs:
            body.extend(self._render_instruction_structs(ix, group))
        for ix, group in program.instruction_account_pairs:
            body.extend(self._render_ix_ops(module, ix, group))
        body.extend(self._render_registry(registry))

        lines = [f"pub mod {module}_fuzz_instructions {{"]
        lines.extend(_block(body, 1))
        lines.append("}")
        return "\n".join(lines) + "\n"

    def _render_enum(self, program: ProgramIdl) -> List[str]:
        lines = [
            f"#[derive({FUZZ_INSTRUCTION_DERIVES})]",
            "pub enum FuzzInstruction {",
        ]
        for ix in program.instructions:
            name = ix.name.upper_camel_case
            lines.append(f"{INDENT}{name}({name}),")
        lines.extend(["}", ""])
        return lines

    def _struct(self, name: str, fields: List[Tuple[str, str]]) -> List[str]:
        lines = ["#[derive(Arbitrary, Clone)]"]
        if not fields:
            lines.extend([f"pub struct {name} {{}}", ""])
            return lines
        lines.append(f"pub struct {name} {{")
        for field_name, ty in fields:
            lines.append(f"{INDENT}pub {field_name}: {ty},")
        lines.extend(["}", ""])
        return lines

    def _render_instruction_structs(self, ix: InstructionIdl, group: AccountGroupIdl) -> List[str]:
        name = ix.name.upper_camel_case
        data = [
            (param, ACCOUNT_ID if is_address_type(ty) else ty)
            for param, ty in ix.parameters
        ]
        lines = self._struct(name, [("accounts", f"{name}Accounts"), ("data", f"{name}Data")])
        lines.extend(self._struct(f"{name}Accounts", [(acc, ACCOUNT_ID) for acc, _ in group.accounts]))
        lines.extend(self._struct(f"{name}Data", data))
        return lines

    def _struct_literal(self, path: str, names: List[str]) -> List[str]:
        if not names:
            return [f"{path} {{}}"]
        return [f"{path} {{"] + [f"{INDENT}{n}: {PLACEHOLDER}," for n in names] + ["}"]

    def _render_ix_ops(self, module: str, ix: InstructionIdl, group: AccountGroupIdl) -> List[str]:
        name = ix.name.upper_camel_case

        data = self._struct_literal(
            f"{module}::instruction::{name}", [p for p, _ in ix.parameters]
        )
        data[0] = "let data = " + data[0]
        data[-1] += ";"

        accounts = self._struct_literal(
            f"{module}::accounts::{name}", [a for a, _ in group.accounts]
        )
        accounts[0] = "let acc_meta = " + accounts[0]
        accounts.append(".to_account_metas(None);")

        get_data = [
            "fn get_data(",
            f"{INDENT}&self,",
            f"{INDENT}_client: &mut impl FuzzClient,",
            f"{INDENT}_fuzz_accounts: &mut FuzzAccounts,",
            ") -> Result<Self::IxData, FuzzingError> {",
        ]
        get_data += _block(data + ["Ok(data)"], 1) + ["}", ""]

        get_accounts = [
            "fn get_accounts(",
            f"{INDENT}&self,",
            f"{INDENT}client: &mut impl FuzzClient,",
            f"{INDENT}fuzz_accounts: &mut FuzzAccounts,",
            ") -> Result<(Vec<Keypair>, Vec<AccountMeta>), FuzzingError> {",
        ]
        get_accounts += _block(
            [f"let signers = vec![{PLACEHOLDER}];"] + accounts + ["Ok((signers, acc_meta))"], 1
        ) + ["}", ""]

        check = [
            "fn check(",
            f"{INDENT}&self,",
            f"{INDENT}_pre_ix: Self::IxSnapshot,",
            f"{INDENT}_post_ix: Self::IxSnapshot,",
            f"{INDENT}_ix_data: Self::IxData,",
            ") -> Result<(), &'static str> {",
            f"{INDENT}{PLACEHOLDER}",
            "}",
        ]

        lines = [
            f"impl<'info> IxOps<'info> for {name} {{",
            f"{INDENT}type IxData = {module}::instruction::{name};",
            f"{INDENT}type IxAccounts = FuzzAccounts;",
            f"{INDENT}type IxSnapshot = {snapshot_name(name)}<'info>;",
            "",
        ]
        lines += _block(get_data + get_accounts + check, 1)
        lines.extend(["}", ""])
        return lines

    def _render_registry(self, registry: RoleRegistry) -> List[str]:
        strategies = ", ".join(s.value for s in StorageStrategy)
        lines = [
            "/// Use AccountsStorage<T> where T can be one of:",
            f"/// {strategies}",
            "#[derive(Default)]",
        ]
        if len(registry) == 0:
            lines.append("pub struct FuzzAccounts {}")
        else:
            lines.append("pub struct FuzzAccounts {")
            for role, strategy in registry.items():
                storage = strategy.value if strategy is not None else PLACEHOLDER
                lines.append(f"{INDENT}{role}: AccountsStorage<{storage}>,")
            lines.append("}")
        lines += [
            "",
            "impl FuzzAccounts {",
            f"{INDENT}pub fn new() -> Self {{",
            f"{INDENT * 2}Default::default()",
            f"{INDENT}}}",
            "}",
        ]
        return lines


def generate_fuzz_instructions_code(
    idl: Idl,
    config: Optional[GeneratorConfig] = None,
    storage: Optional[Dict[str, StorageStrategy]] = None,
) -> str:
    """Generate `fuzz_instructions.rs` for every program of the IDL."""
    return FuzzHarnessGenerator(config, storage).generate(idl)
