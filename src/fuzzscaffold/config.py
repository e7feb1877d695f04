"""
Generator configuration.

Defaults match the layout the fuzzing client expects; every value can be
overridden through FUZZSCAFFOLD_* environment variables or a .env file.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path


ENV_PREFIX = "FUZZSCAFFOLD_"


def load_env(start: Path = None) -> None:
    """Load .env file from the working directory or its parents."""
    current = start or Path.cwd()
    for _ in range(5):  # Check up to 5 parent dirs
        env_file = current / ".env"
        if env_file.exists():
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip())
            break
        current = current.parent


@dataclass
class GeneratorConfig:
    """Names used in the generated Rust code and the files it lands in."""
    # Crate re-exporting anchor_lang and the fuzzing helpers
    client_crate: str = "trdelnik_client"
    # Constant compared against optional accounts ("not provided" sentinel)
    program_id_const: str = "PROGRAM_ID"
    # Module the fuzz harness imports snapshots from
    snapshots_module: str = "accounts_snapshots"
    snapshots_file: str = "accounts_snapshots.rs"
    fuzz_instructions_file: str = "fuzz_instructions.rs"

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Build a config, overlaying FUZZSCAFFOLD_<FIELD> environment variables."""
        load_env()
        overrides = {}
        for f in fields(cls):
            value = os.getenv(ENV_PREFIX + f.name.upper())
            if value:
                overrides[f.name] = value
        return cls(**overrides)
