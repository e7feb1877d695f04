import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from fuzzscaffold.analysis import Idl, parse_to_idl_program
from fuzzscaffold.analysis.models import (
    AccountFieldDescriptor,
    AccountGroupIdl,
    AccountKind,
    InstructionIdl,
    ProgramIdl,
)
from fuzzscaffold.analysis.naming import Name
from fuzzscaffold.config import GeneratorConfig
from fuzzscaffold.state import (
    DeserializationMode,
    SnapshotGenerator,
    generate_snapshots_code,
)
from fuzzscaffold.state.render import render_deserializer, render_snapshot_struct

from conftest import CROWDFUND_SRC


def build(idl, program=0):
    return SnapshotGenerator().build(idl.programs[program])


def by_name(descriptors):
    return {d.name: d for d in descriptors}


def test_initialize_snapshot_plan(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    init = by_name(descriptors)["InitializeSnapshot"]
    assert [s.field for s in init.plan] == ["author", "state"]
    assert [s.optional for s in init.plan] == [False, True]
    assert init.slots == 2
    assert [(f.name, f.type_text) for f in init.fields] == [
        ("author", "Signer<'info>"),
        ("state", "Option<Account<'info, State>>"),
    ]


def test_shared_context_emits_alias(crowdfund_idl):
    descriptors, aliases = build(crowdfund_idl)
    assert [d.name for d in descriptors] == [
        "InitializeSnapshot", "RegisterSnapshot", "TransferSnapshot",
    ]
    assert [(a.name, a.target) for a in aliases] == [("InvestSnapshot", "RegisterSnapshot")]

    code, _ = generate_snapshots_code(crowdfund_idl)
    assert code.count("pub struct RegisterSnapshot<'info> {") == 1
    assert code.count("impl<'info> RegisterSnapshot<'info> {") == 1
    assert "pub struct InvestSnapshot" not in code
    assert "impl<'info> InvestSnapshot" not in code
    assert "pub type InvestSnapshot<'info> = RegisterSnapshot<'info>;" in code


def test_field_types_follow_optional_and_raw_handle(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    transfer = by_name(descriptors)["TransferSnapshot"]
    assert [(f.name, f.type_text) for f in transfer.fields] == [
        ("sender", "Signer<'info>"),
        ("vault", "Option<Account<'info, Vault>>"),
        ("authority", "UncheckedAccount<'info>"),
        ("referrer", "Option<&'info AccountInfo<'info>>"),
        ("nested", "Nested<'info>"),
        ("ticket", "Option<AccountLoader<'info, Ticket>>"),
    ]
    common = by_name(descriptors)["RegisterSnapshot"]
    assert ("fee_collector", "&'info AccountInfo<'info>") in [
        (f.name, f.type_text) for f in common.fields
    ]


def test_composite_field_is_placeholder(crowdfund_idl):
    generator = SnapshotGenerator()
    descriptors, _ = generator.build(crowdfund_idl.programs[0])
    transfer = by_name(descriptors)["TransferSnapshot"]
    modes = {s.field: s.mode for s in transfer.plan}
    assert modes["nested"] == DeserializationMode.PLACEHOLDER
    assert modes["authority"] == DeserializationMode.UNCHECKED
    assert modes["referrer"] == DeserializationMode.RAW
    # nested takes no slot
    assert transfer.slots == 5

    assert len(generator.warnings) == 1
    warning = generator.warnings[0]
    assert "`Transfer`" in warning
    assert "`nested`" in warning
    assert "Nested<'info>" in warning


WRAPPED_COMPOSITE_SRC = """
#[program]
pub mod wrapped {
    use super::*;

    pub fn settle(ctx: Context<Settle>) -> Result<()> {
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Settle<'info> {
    pub payer: Signer<'info>,
    pub opt_nested: Option<Nested<'info>>,
    pub boxed_nested: Box<Nested<'info>>,
}
"""


def test_wrapped_composite_field_types():
    generator = SnapshotGenerator()
    program = parse_to_idl_program(WRAPPED_COMPOSITE_SRC)
    descriptors, _ = generator.build(program)
    settle = by_name(descriptors)["SettleSnapshot"]

    types = {f.name: f.type_text for f in settle.fields}
    assert types["opt_nested"] == "Option<Nested<'info>>"
    assert types["boxed_nested"] == "Nested<'info>"

    modes = {s.field: s.mode for s in settle.plan}
    assert modes["opt_nested"] == DeserializationMode.PLACEHOLDER
    assert modes["boxed_nested"] == DeserializationMode.PLACEHOLDER
    assert settle.slots == 1
    assert len(generator.warnings) == 2

    text = render_snapshot_struct(settle)
    assert "Option<Option<" not in text
    assert "Box<" not in text
    assert "    pub opt_nested: Option<Nested<'info>>,\n" in text
    assert "    pub boxed_nested: Nested<'info>,\n" in text


def test_rendered_struct(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    text = render_snapshot_struct(by_name(descriptors)["InitializeSnapshot"])
    assert text == (
        "pub struct InitializeSnapshot<'info> {\n"
        "    pub author: Signer<'info>,\n"
        "    pub state: Option<Account<'info, State>>,\n"
        "}\n"
    )


def test_rendered_mandatory_typed_field(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    text = render_deserializer(by_name(descriptors)["InitializeSnapshot"], GeneratorConfig())
    expected = "\n".join([
        "        let author: Signer<'_> = accounts_iter",
        "            .next()",
        '            .ok_or(FuzzingError::NotEnoughAccounts("author".to_string()))?',
        "            .as_ref()",
        "            .map(anchor_lang::accounts::signer::Signer::try_from)",
        '            .ok_or(FuzzingError::AccountNotFound("author".to_string()))?',
        '            .map_err(|_| FuzzingError::CannotDeserializeAccount("author".to_string()))?;',
    ])
    assert expected in text
    assert "pub fn deserialize_option(" in text
    assert "accounts: &'info mut [Option<AccountInfo<'info>>]," in text
    assert ") -> core::result::Result<Self, FuzzingError> {" in text
    assert "let mut accounts_iter = accounts.iter();" in text
    # fields consumed in declaration order
    assert text.index("let author") < text.index("let state")


def test_rendered_optional_typed_field_keeps_errors(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    text = render_deserializer(by_name(descriptors)["InitializeSnapshot"], GeneratorConfig())
    assert (
        "let state: Option<anchor_lang::accounts::account::Account<State>> = accounts_iter"
        in text
    )
    assert "if acc.key() != PROGRAM_ID {" in text
    assert "anchor_lang::accounts::account::Account::try_from(acc)" in text
    assert 'Err(FuzzingError::OptionalAccountNotProvided("state".to_string()))' in text
    assert "FuzzingError::OptionalAccountNotProvided(_) => Ok(None)," in text
    assert "e => Err(e)," in text
    assert "unwrap_or(None)" not in text


def test_rendered_transfer_steps(crowdfund_idl):
    descriptors, _ = build(crowdfund_idl)
    text = render_deserializer(by_name(descriptors)["TransferSnapshot"], GeneratorConfig())
    assert "let nested = todo!();" in text
    assert (
        "            .map(anchor_lang::accounts::unchecked_account::UncheckedAccount::try_from)\n"
        '            .ok_or(FuzzingError::AccountNotFound("authority".to_string()))?;'
    ) in text
    assert (
        "        let referrer = accounts_iter\n"
        "            .next()\n"
        '            .ok_or(FuzzingError::NotEnoughAccounts("referrer".to_string()))?\n'
        "            .as_ref()\n"
        "            .filter(|acc| acc.key() != PROGRAM_ID);"
    ) in text
    assert (
        "let ticket: Option<anchor_lang::accounts::account_loader::AccountLoader<Ticket>>"
        in text
    )
    assert "let vault: Option<anchor_lang::accounts::account::Account<Vault>>" in text
    assert text.rstrip().endswith(
        "Ok(Self {\n"
        "            sender,\n"
        "            vault,\n"
        "            authority,\n"
        "            referrer,\n"
        "            nested,\n"
        "            ticket,\n"
        "        })\n"
        "    }\n"
        "}"
    )


def test_sysvar_and_interface_return_types(crowdfund_idl, vault_idl):
    descriptors, _ = build(crowdfund_idl)
    common = render_deserializer(by_name(descriptors)["RegisterSnapshot"], GeneratorConfig())
    assert "let clock: Sysvar<Clock> = accounts_iter" in common
    assert ".map(anchor_lang::accounts::sysvar::Sysvar::from_account_info)" in common
    assert (
        "let system_program: anchor_lang::accounts::program::Program<System> = accounts_iter"
        in common
    )

    code, _ = generate_snapshots_code(vault_idl)
    assert (
        "let wrong: Signer<'_> = accounts_iter" in code
    )


def test_zero_field_context(vault_idl):
    descriptors, _ = build(vault_idl)
    noop = by_name(descriptors)["NoopSnapshot"]
    assert noop.fields == []
    assert noop.slots == 0
    # 'info must be used by some field or rustc rejects the struct
    assert render_snapshot_struct(noop) == (
        "pub struct NoopSnapshot<'info> {\n"
        "    _marker: core::marker::PhantomData<&'info ()>,\n"
        "}\n"
    )
    text = render_deserializer(noop, GeneratorConfig())
    assert "accounts_iter" not in text
    assert "Ok(Self {\n            _marker: core::marker::PhantomData,\n        })" in text


def test_sections_ordered(crowdfund_idl):
    code, _ = generate_snapshots_code(crowdfund_idl)
    assert code.startswith(
        "use trdelnik_client::anchor_lang::{prelude::*, self};\n"
        "use trdelnik_client::fuzzing::FuzzingError;\n"
    )
    last_struct = code.index("pub struct TransferSnapshot")
    first_impl = code.index("impl<'info> InitializeSnapshot<'info>")
    last_impl = code.index("impl<'info> TransferSnapshot<'info>")
    alias = code.index("pub type InvestSnapshot")
    assert last_struct < first_impl < last_impl < alias


def test_programs_concatenated_in_order(crowdfund_idl, vault_idl):
    idl = Idl(programs=crowdfund_idl.programs + vault_idl.programs)
    code, _ = generate_snapshots_code(idl)
    assert code.count("use trdelnik_client::fuzzing::FuzzingError;") == 2
    assert code.index("InitializeSnapshot") < code.index("DepositSnapshot")


def test_config_names_used(crowdfund_idl):
    config = GeneratorConfig(client_crate="trident_client", program_id_const="SENTINEL")
    code, _ = generate_snapshots_code(crowdfund_idl, config)
    assert "use trident_client::anchor_lang::{prelude::*, self};" in code
    assert "acc.key() != SENTINEL" in code
    assert "PROGRAM_ID" not in code


def test_output_is_deterministic():
    first, _ = generate_snapshots_code(Idl(programs=[parse_to_idl_program(CROWDFUND_SRC)]))
    second, _ = generate_snapshots_code(Idl(programs=[parse_to_idl_program(CROWDFUND_SRC)]))
    assert first == second


def signer_field(name):
    return AccountFieldDescriptor(
        name=name,
        declared_type="Signer<'info>",
        account_type="Signer<'info>",
        kind=AccountKind.SIGNER,
    )


@settings(max_examples=50, deadline=None)
@given(assignment=st.lists(st.integers(min_value=0, max_value=4), min_size=1, max_size=12))
def test_one_struct_per_context_identity(assignment):
    pairs = []
    for i, ctx in enumerate(assignment):
        group = AccountGroupIdl(
            name=f"Ctx{ctx}",
            identity=f"Ctx{ctx}<'info>",
            fields=[signer_field(f"signer_{ctx}")],
        )
        pairs.append((InstructionIdl(name=Name(f"ix_{i}")), group))
    program = ProgramIdl(name=Name("prog"), instruction_account_pairs=pairs)

    descriptors, aliases = SnapshotGenerator().build(program)

    assert len(descriptors) == len(set(assignment))
    assert len(descriptors) + len(aliases) == len(assignment)

    first_user = {}
    for i, ctx in enumerate(assignment):
        first_user.setdefault(ctx, f"Ix{i}Snapshot")
    assert [d.name for d in descriptors] == list(first_user.values())
    for alias in aliases:
        ctx = assignment[int(alias.name[2:-len("Snapshot")])]
        assert alias.target == first_user[ctx]
