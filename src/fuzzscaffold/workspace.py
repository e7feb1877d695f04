"""
Writing generated files into a fuzz test workspace.
"""

from pathlib import Path
from typing import Optional, Union

from rich.console import Console

console = Console()


def create_file(
    path: Union[str, Path],
    content: str,
    force: bool = False,
    out: Optional[Console] = None,
) -> bool:
    """
    Write `content` to `path`, creating parent directories.

    An existing file is left untouched unless `force` is set.

    Returns:
        True if the file was written, False if it was skipped
    """
    out = out or console
    path = Path(path)

    if path.exists() and not force:
        out.print(f"[yellow]Skipping[/yellow] {path} [dim](already exists)[/dim]")
        return False

    existed = path.exists()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    verb = "Updated" if existed else "Created"
    out.print(f"[green]✓ {verb}[/green] {path}")
    return True
