"""
CLI entry point for fuzzscaffold.

Usage:
    fuzzscaffold analyze expanded.rs --entry programs/escrow/src/lib.rs
    fuzzscaffold snapshots expanded.rs --entry lib.rs -o accounts_snapshots.rs
    fuzzscaffold fuzz-instructions expanded.rs --entry lib.rs --storage author=Keypair
    fuzzscaffold generate expanded.rs --entry lib.rs --out-dir trdelnik-tests/src
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table

from fuzzscaffold.config import GeneratorConfig

console = Console()
# Generated code may go to stdout, so diagnostics go to stderr
err_console = Console(stderr=True)


def load_idl(args: argparse.Namespace):
    """Analyze every source; --entry files pair with sources by position."""
    from fuzzscaffold.analysis import Idl, load_program_idl

    entries: List[Optional[str]] = list(args.entry or [])
    if len(entries) > len(args.sources):
        raise ValueError(
            f"{len(entries)} --entry files given for {len(args.sources)} sources"
        )
    entries += [None] * (len(args.sources) - len(entries))

    return Idl(programs=[
        load_program_idl(source, entry_path=entry)
        for source, entry in zip(args.sources, entries)
    ])


def parse_storage(values: Optional[List[str]]) -> Dict:
    """`ROLE=STRATEGY` pairs -> bindings."""
    from fuzzscaffold.fuzzing import StorageStrategy

    storage = {}
    for value in values or []:
        if "=" not in value:
            raise ValueError(f"Expected ROLE=STRATEGY, got: {value}")
        role, strategy = value.split("=", 1)
        storage[role.strip()] = StorageStrategy.parse(strategy.strip())
    return storage


def print_warnings(warnings: List[str]):
    for warning in warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(warning)}", highlight=False)


def emit(code: str, output: Optional[str], force: bool) -> None:
    """Write generated code to a file, or to stdout when no file is given."""
    if output:
        from fuzzscaffold.workspace import create_file

        create_file(output, code, force=force, out=err_console)
    else:
        sys.stdout.write(code)


def run_analyze(args: argparse.Namespace) -> int:
    """Analyze programs and show their instructions."""
    from fuzzscaffold.analysis import export_idl

    try:
        idl = load_idl(args)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    for program in idl.programs:
        console.print()
        console.print(Panel(
            f"[bold cyan]{program.name}[/bold cyan]\n\n"
            f"[dim]Program ID: {program.program_id or 'Not specified'}[/dim]\n"
            f"[dim]Instructions: {len(program.instruction_account_pairs)}[/dim]",
            title="[bold]Program Analysis[/bold]",
        ))

        table = Table(title="Instructions")
        table.add_column("Name", style="cyan")
        table.add_column("Context")
        table.add_column("Accounts", justify="right")
        table.add_column("Args", style="dim")
        table.add_column("Optional", style="yellow")

        for ix, group in program.instruction_account_pairs:
            optional = [f.name for f in group.fields if f.is_optional]
            table.add_row(
                ix.name.raw,
                group.name,
                str(len(group.fields)),
                ", ".join(f"{n}: {t}" for n, t in ix.parameters) or "-",
                ", ".join(optional) or "-",
            )

        console.print(table)

    if args.output:
        export_idl(idl, args.output)
        console.print(f"\n[dim]IDL exported to: {args.output}[/dim]")

    return 0


def run_snapshots(args: argparse.Namespace) -> int:
    """Generate account snapshots."""
    from fuzzscaffold.state import generate_snapshots_code

    config = GeneratorConfig.from_env()
    try:
        idl = load_idl(args)
        code, warnings = generate_snapshots_code(idl, config)
    except (ValueError, FileNotFoundError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    print_warnings(warnings)
    emit(code, args.output, args.force)
    return 0


def run_fuzz_instructions(args: argparse.Namespace) -> int:
    """Generate the fuzz instruction scaffolding."""
    from fuzzscaffold.fuzzing import generate_fuzz_instructions_code

    config = GeneratorConfig.from_env()
    try:
        idl = load_idl(args)
        storage = parse_storage(args.storage)
        code = generate_fuzz_instructions_code(idl, config, storage)
    except (ValueError, FileNotFoundError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    warn_unknown_roles(idl, storage)
    emit(code, args.output, args.force)
    return 0


def warn_unknown_roles(idl, storage: Dict) -> None:
    from fuzzscaffold.fuzzing import FuzzHarnessGenerator

    generator = FuzzHarnessGenerator()
    known = set()
    for program in idl.programs:
        known.update(generator.build_registry(program).roles)
    for role in sorted(set(storage) - known):
        err_console.print(f"[yellow]Warning:[/yellow] no account role named `{role}`")


def run_generate(args: argparse.Namespace) -> int:
    """Generate both files into a fuzz test crate."""
    from fuzzscaffold.fuzzing import generate_fuzz_instructions_code
    from fuzzscaffold.state import generate_snapshots_code
    from fuzzscaffold.workspace import create_file

    config = GeneratorConfig.from_env()
    try:
        idl = load_idl(args)
        storage = parse_storage(args.storage)
        snapshots, warnings = generate_snapshots_code(idl, config)
        fuzz_instructions = generate_fuzz_instructions_code(idl, config, storage)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    out_dir = Path(args.out_dir)
    create_file(out_dir / config.snapshots_file, snapshots, force=args.force)
    create_file(out_dir / config.fuzz_instructions_file, fuzz_instructions, force=args.force)
    print_warnings(warnings)
    warn_unknown_roles(idl, storage)
    return 0


def add_source_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "sources",
        nargs="+",
        help="Macro-expanded program sources, one per program",
    )
    parser.add_argument(
        "--entry", "-e",
        action="append",
        help="Source with the #[program] module (e.g. lib.rs), paired with sources by position",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="fuzzscaffold",
        description="Generate account snapshots and fuzz test scaffolding for Anchor programs",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Show instructions and their accounts")
    add_source_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Export the IDL to a JSON file",
    )

    # snapshots command
    snapshots_parser = subparsers.add_parser("snapshots", help="Generate accounts_snapshots.rs")
    add_source_arguments(snapshots_parser)
    snapshots_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output file (default: stdout)",
    )
    snapshots_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing output file",
    )

    # fuzz-instructions command
    fuzz_parser = subparsers.add_parser("fuzz-instructions", help="Generate fuzz_instructions.rs")
    add_source_arguments(fuzz_parser)
    fuzz_parser.add_argument(
        "--storage", "-s",
        action="append",
        metavar="ROLE=STRATEGY",
        help="Bind an account role to a storage (Keypair, PdaStore, TokenStore, MintStore, ProgramStore)",
    )
    fuzz_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output file (default: stdout)",
    )
    fuzz_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing output file",
    )

    # generate command
    generate_parser = subparsers.add_parser("generate", help="Generate both files into a directory")
    add_source_arguments(generate_parser)
    generate_parser.add_argument(
        "--out-dir", "-d",
        type=str,
        required=True,
        help="Directory of the fuzz test crate sources",
    )
    generate_parser.add_argument(
        "--storage", "-s",
        action="append",
        metavar="ROLE=STRATEGY",
        help="Bind an account role to a storage",
    )
    generate_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing files",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "analyze":
        return run_analyze(args)
    elif args.command == "snapshots":
        return run_snapshots(args)
    elif args.command == "fuzz-instructions":
        return run_fuzz_instructions(args)
    elif args.command == "generate":
        return run_generate(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
