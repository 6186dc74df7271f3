# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line entry point."""

import logging
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler

from onbehalf_patcher.config import PatcherConfig
from onbehalf_patcher.discovery import find_extension_files
from onbehalf_patcher.transaction import ExtensionPatcher


def _configure_logging(console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@click.command("onbehalf-patcher")
@click.argument("file", required=False, type=click.Path(path_type=Path))
@click.option("--dry-run", is_flag=True, help="Show what would change without writing.")
@click.option("--diff", "show_diff", is_flag=True, help="Render a diff of each change.")
@click.option(
    "--extensions-dir",
    "extensions_dirs",
    multiple=True,
    type=click.Path(path_type=Path),
    help="Extra extension directory to search (repeatable).",
)
@click.option("--no-verify", is_flag=True, help="Skip the re-parse check of patched output.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(
    ctx: click.Context,
    file: Optional[Path],
    dry_run: bool,
    show_diff: bool,
    extensions_dirs: Tuple[Path, ...],
    no_verify: bool,
    verbose: bool,
) -> None:
    """Strip the x-onbehalf-extension-id header from Copilot Chat bundles.

    With FILE, patch only that file. Otherwise patch every installed
    github.copilot-chat-*/dist/extension.js.
    """
    console = Console()
    _configure_logging(console, verbose)

    config = PatcherConfig.from_env(
        extra_extension_dirs=list(extensions_dirs),
        verify_syntax=not no_verify,
        dry_run=dry_run,
        show_diff=show_diff,
    )

    if file is not None:
        target = file.expanduser().resolve()
        if not target.exists():
            console.print(f"[bold red]✗ File does not exist:[/] {target}")
            ctx.exit(1)
        console.print(f"Patching single file: {target}")
        files = [target]
    else:
        console.print("Searching for Copilot Chat extension bundles...")
        files = find_extension_files(config)
        if not files:
            console.print("No Copilot Chat extension bundles found.")
            ctx.exit(0)
        console.print(f"Found {len(files)} bundle(s)")

    summary = ExtensionPatcher(config=config, console=console).patch_files(files)
    ctx.exit(summary.exit_code)


if __name__ == "__main__":
    main()
