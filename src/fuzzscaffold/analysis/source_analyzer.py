"""
Source Analyzer: locates instruction handlers and their context structs.

Works on the macro-expanded source of an Anchor program (`cargo rustc --
-Zunpretty=expanded`). Expansion consumes the `#[program]` attribute, so the
module carrying it can be looked up in a separate entry source (the
program's `lib.rs`) while the context structs come from the expanded code.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from solders.pubkey import Pubkey
from tree_sitter import Node

from ..errors import (
    ContextNotFoundError,
    InvalidProgramIdError,
    MalformedInstructionError,
    ProgramModuleNotFoundError,
    UnsupportedContextError,
)
from .accounts import classify_field
from .models import AccountFieldDescriptor
from .rust_syntax import (
    TypeRef,
    attribute_path,
    name_of,
    node_text,
    normalize_type,
    outer_attributes,
    parse,
)


PROGRAM_ATTRIBUTE = "program"

_STRING_LITERAL = re.compile(r'"([^"]*)"')


@dataclass
class StructDefinition:
    """A struct item found somewhere in the source."""
    name: str
    module_path: List[str]
    node: Node

    @property
    def qualified_name(self) -> str:
        return "::".join(self.module_path + [self.name])


class StructIndex:
    """
    Name -> struct definition index built in a single pass.

    Structs of a scope are registered before its nested modules are visited,
    and modules are visited in declaration order, so the first definition of
    a name in that order wins.
    """

    def __init__(self):
        self.definitions: List[StructDefinition] = []
        self.by_name: Dict[str, int] = {}

    @classmethod
    def build(cls, root: Node) -> "StructIndex":
        index = cls()
        index._visit(root, [])
        return index

    def _visit(self, scope: Node, module_path: List[str]):
        modules = []
        for item in scope.named_children:
            if item.type == "struct_item":
                name = name_of(item)
                if name and name not in self.by_name:
                    self.by_name[name] = len(self.definitions)
                    self.definitions.append(StructDefinition(name, module_path, item))
            elif item.type == "mod_item":
                body = item.child_by_field_name("body")
                if body is not None:
                    modules.append((name_of(item), body))
        for name, body in modules:
            self._visit(body, module_path + [name])

    def lookup(self, name: str) -> Optional[StructDefinition]:
        idx = self.by_name.get(name)
        return self.definitions[idx] if idx is not None else None

    def __len__(self) -> int:
        return len(self.definitions)


@dataclass
class InstructionHandler:
    """A function of the #[program] module."""
    name: str
    context: TypeRef  # T of Context<T>
    parameters: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def context_identity(self) -> str:
        return self.context.text

    @property
    def context_name(self) -> str:
        return self.context.ident


@dataclass
class ContextStruct:
    """A resolved context struct with classified fields."""
    name: str
    identity: str
    module_path: List[str]
    fields: List[AccountFieldDescriptor] = field(default_factory=list)


@dataclass
class ProgramSource:
    """Everything the analyzer recovered from one program."""
    name: str
    handlers: List[InstructionHandler] = field(default_factory=list)
    contexts: Dict[str, ContextStruct] = field(default_factory=dict)  # identity -> struct
    program_id: Optional[str] = None

    def context_for(self, handler: InstructionHandler) -> ContextStruct:
        return self.contexts[handler.context_identity]


class SourceAnalyzer:
    """
    Static analysis of an Anchor program's source.

    Finds the #[program] module, its instruction handlers and the
    Context<T> struct behind each of them, and classifies the struct fields.
    """

    def analyze(
        self,
        code: str,
        entry_code: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ProgramSource:
        """
        Analyze one program.

        Args:
            code: Expanded source holding the context structs
            entry_code: Source holding the #[program] module (defaults to code)
            name: Program name (defaults to the #[program] module name)

        Returns:
            ProgramSource with handlers in declaration order

        Raises:
            GenerationError subclasses; nothing is returned on failure
        """
        root = parse(code)
        entry_root = parse(entry_code) if entry_code is not None else root

        module = self._find_program_module(entry_root, name)
        program_name = name or name_of(module)

        body = module.child_by_field_name("body")
        if body is None:
            raise ProgramModuleNotFoundError(
                "the content of program module is missing", program_name
            )

        handlers = self._collect_handlers(body, program_name)

        index = StructIndex.build(root)
        contexts: Dict[str, ContextStruct] = {}
        for handler in handlers:
            identity = handler.context_identity
            if identity in contexts:
                continue
            definition = index.lookup(handler.context_name)
            if definition is None:
                raise ContextNotFoundError(handler.context_name, program_name)
            contexts[identity] = self._parse_context(definition, identity, program_name)

        program_id = self._find_program_id(entry_root, program_name)
        if program_id is None and entry_root is not root:
            program_id = self._find_program_id(root, program_name)

        return ProgramSource(
            name=program_name,
            handlers=handlers,
            contexts=contexts,
            program_id=program_id,
        )

    def _find_program_module(self, root: Node, name: Optional[str]) -> Node:
        """Locate the single top-level module with the #[program] attribute."""
        candidates = [
            item for item in root.named_children
            if item.type == "mod_item"
            and any(attribute_path(a) == PROGRAM_ATTRIBUTE for a in outer_attributes(item))
        ]
        if not candidates:
            raise ProgramModuleNotFoundError("module with program attribute not found", name)
        if len(candidates) > 1:
            names = ", ".join(name_of(c) or "?" for c in candidates)
            raise ProgramModuleNotFoundError(
                f"more than one module with program attribute: {names}", name
            )
        return candidates[0]

    def _collect_handlers(self, body: Node, program: str) -> List[InstructionHandler]:
        """Pair every top-level function with the T of its Context<T> parameter."""
        handlers = []
        for item in body.named_children:
            if item.type != "function_item":
                continue
            func_name = name_of(item)
            params = [
                p for p in item.child_by_field_name("parameters").named_children
                if p.type == "parameter"
            ]
            if not params:
                raise MalformedInstructionError(func_name, program)

            context = self._context_argument(params[0])
            if context is None:
                raise MalformedInstructionError(func_name, program)

            parameters = []
            for param in params[1:]:
                pattern = node_text(param.child_by_field_name("pattern"))
                pattern = re.sub(r"^mut\s+", "", pattern)
                parameters.append(
                    (pattern, normalize_type(node_text(param.child_by_field_name("type"))))
                )
            handlers.append(InstructionHandler(func_name, context, parameters))
        return handlers

    def _context_argument(self, param: Node) -> Optional[TypeRef]:
        """T of a `ctx: Context<'_, .., T>` parameter; lifetimes are ignored."""
        type_node = param.child_by_field_name("type")
        if type_node is None or type_node.type != "generic_type":
            return None
        ty = TypeRef.from_node(type_node)
        type_args = ty.type_args
        if len(type_args) != 1 or not type_args[0].is_path:
            return None
        return type_args[0]

    def _parse_context(
        self, definition: StructDefinition, identity: str, program: str
    ) -> ContextStruct:
        body = definition.node.child_by_field_name("body")
        if body is None or body.type != "field_declaration_list":
            raise UnsupportedContextError(definition.name, program)

        fields = []
        for decl in body.named_children:
            if decl.type != "field_declaration":
                continue
            field_name = name_of(decl)
            declared = TypeRef.from_node(decl.child_by_field_name("type"))
            fields.append(
                classify_field(definition.name, field_name, declared, outer_attributes(decl))
            )
        return ContextStruct(
            name=definition.name,
            identity=identity,
            module_path=definition.module_path,
            fields=fields,
        )

    def _find_program_id(self, root: Node, program: str) -> Optional[str]:
        """Address passed to declare_id!, validated as a Solana pubkey."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "macro_invocation":
                macro = node.child_by_field_name("macro")
                if macro is not None and node_text(macro).split("::")[-1] == "declare_id":
                    match = _STRING_LITERAL.search(node_text(node))
                    if match is None:
                        continue
                    try:
                        return str(Pubkey.from_string(match.group(1)))
                    except ValueError as e:
                        raise InvalidProgramIdError(
                            f"invalid program id {match.group(1)!r}: {e}", program
                        ) from e
            stack.extend(reversed(node.children))
        return None
