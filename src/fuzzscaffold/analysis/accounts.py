"""
Account field classification.

Each field of an Anchor `#[derive(Accounts)]` struct is classified exactly
once, when the struct is resolved, into an `AccountFieldDescriptor` carrying
a closed `AccountKind` tag. The synthesizers only ever look at the tag.
"""

from typing import List, Optional, Tuple

from ..errors import UnknownAccountTypeError
from .models import AccountFieldDescriptor, AccountKind
from .rust_syntax import TypeRef, attribute_arguments, attribute_path


SYSVARS = {
    "Clock",
    "Rent",
    "EpochSchedule",
    "Fees",
    "RecentBlockhashes",
    "SlotHashes",
    "SlotHistory",
    "StakeHistory",
    "Instructions",
    "Rewards",
}

# Base identifier -> (kind, whether the wrapper takes a type argument)
LEAF_ACCOUNT_TYPES = {
    "SystemAccount": (AccountKind.SYSTEM_ACCOUNT, False),
    "Sysvar": (AccountKind.SYSVAR, True),
    "Signer": (AccountKind.SIGNER, False),
    "Program": (AccountKind.PROGRAM, True),
    "Interface": (AccountKind.INTERFACE, True),
    "Account": (AccountKind.TYPED_ACCOUNT, True),
    "InterfaceAccount": (AccountKind.TYPED_ACCOUNT, True),
    "AccountLoader": (AccountKind.ACCOUNT_LOADER, True),
    "UncheckedAccount": (AccountKind.UNCHECKED_ACCOUNT, False),
    "AccountInfo": (AccountKind.RAW_HANDLE, False),
}


def unwrap(ty: TypeRef, wrapper: str) -> Tuple[TypeRef, bool]:
    """Strip one outer `wrapper<...>` layer, if present."""
    if ty.ident == wrapper and len(ty.type_args) == 1:
        return ty.type_args[0], True
    return ty, False


def parse_constraints(attributes: List[str]) -> Tuple[bool, bool]:
    """Return (has_init, has_close) from the field's #[account(...)] attributes."""
    has_init = has_close = False
    for attr in attributes:
        if attribute_path(attr) != "account":
            continue
        for arg in attribute_arguments(attr):
            key = arg.split("=", 1)[0].strip()
            if key in ("init", "init_if_needed"):
                has_init = True
            elif key == "close":
                has_close = True
    return has_init, has_close


def classify_field(
    struct_name: str,
    field_name: str,
    declared: TypeRef,
    attributes: Optional[List[str]] = None,
) -> AccountFieldDescriptor:
    """
    Classify one context struct field.

    Option<...> marks the field as declared-optional, Box<...> as boxed; both
    wrappers are removed from `account_type`. A base identifier outside the
    known account wrappers is a nested account group (Composite). A known
    wrapper with an unexpected shape is an error.
    """
    has_init, has_close = parse_constraints(attributes or [])

    ty, is_optional = unwrap(declared, "Option")
    ty, is_boxed = unwrap(ty, "Box")

    def fail(reason: str):
        raise UnknownAccountTypeError(struct_name, field_name, declared.text, reason)

    if not ty.is_path:
        fail(f"expected a type path, found {ty.kind}")

    leaf = LEAF_ACCOUNT_TYPES.get(ty.ident)
    if leaf is None:
        return AccountFieldDescriptor(
            name=field_name,
            declared_type=declared.text,
            account_type=ty.text,
            kind=AccountKind.COMPOSITE,
            declared_optional=is_optional,
            is_boxed=is_boxed,
            has_init=has_init,
            has_close=has_close,
        )

    kind, needs_inner = leaf
    inner = None
    if needs_inner:
        type_args = ty.type_args
        if len(type_args) != 1:
            fail(f"{ty.ident} takes exactly one type argument")
        inner = type_args[0].text
        if kind == AccountKind.SYSVAR:
            sysvar = type_args[0].ident
            if sysvar not in SYSVARS:
                fail(f"unknown sysvar {inner}")
            inner = sysvar

    return AccountFieldDescriptor(
        name=field_name,
        declared_type=declared.text,
        account_type=ty.text,
        kind=kind,
        inner_type=inner,
        is_interface=ty.ident == "InterfaceAccount",
        declared_optional=is_optional,
        is_boxed=is_boxed,
        has_init=has_init,
        has_close=has_close,
    )
