"""
Data models for fuzz harness generation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


PLACEHOLDER = "todo!()"


class StorageStrategy(Enum):
    """How the fuzzer stores the accounts of one role."""
    KEYPAIR = "Keypair"
    PDA_STORE = "PdaStore"
    TOKEN_STORE = "TokenStore"
    MINT_STORE = "MintStore"
    PROGRAM_STORE = "ProgramStore"

    @classmethod
    def parse(cls, value: str) -> "StorageStrategy":
        """Accept `PdaStore`, `pda_store` or `PDA_STORE`."""
        key = value.replace("_", "").replace("-", "").lower()
        for strategy in cls:
            if strategy.value.lower() == key:
                return strategy
        choices = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown storage strategy: {value} (expected one of {choices})")


@dataclass
class RoleRegistry:
    """
    Account roles of the fuzz harness.

    A role is either an account name of some context or an address-typed
    instruction parameter. Iteration is always in lexicographic order,
    whatever the insertion order was.
    """
    bindings: Dict[str, Optional[StorageStrategy]] = field(default_factory=dict)

    def add(self, role: str):
        self.bindings.setdefault(role, None)

    def bind(self, role: str, strategy: StorageStrategy):
        if role not in self.bindings:
            raise KeyError(f"Unknown account role: {role}")
        self.bindings[role] = strategy

    @property
    def roles(self) -> List[str]:
        return sorted(self.bindings)

    def items(self) -> Iterator[Tuple[str, Optional[StorageStrategy]]]:
        for role in self.roles:
            yield role, self.bindings[role]

    def __contains__(self, role: str) -> bool:
        return role in self.bindings

    def __len__(self) -> int:
        return len(self.bindings)

    def __iter__(self) -> Iterator[str]:
        return iter(self.roles)
