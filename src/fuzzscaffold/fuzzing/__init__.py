"""
Fuzzing module for scaffolding fuzz test harnesses.
"""

from .models import RoleRegistry, StorageStrategy
from .generator import FuzzHarnessGenerator, generate_fuzz_instructions_code

__all__ = [
    "RoleRegistry",
    "StorageStrategy",
    "FuzzHarnessGenerator",
    "generate_fuzz_instructions_code",
]
