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

"""Patch transaction with backup and rollback.

Each file is patched as an all-or-nothing unit:
- Backup to a sibling path before anything else
- Parse, transform and print from the backup's content
- Write only when something was removed
- Delete the backup on success, restore from it on failure
"""

import difflib
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from onbehalf_patcher.config import PatcherConfig
from onbehalf_patcher.errors import (
    BackupError,
    FileStoreError,
    MissingFileError,
    RestoreError,
    TransformError,
)
from onbehalf_patcher.protocol import BatchSummary, PatchResult, PatchStatus, TransformPlan
from onbehalf_patcher.store import FileStore, LocalFileStore
from onbehalf_patcher.transforms import TargetKeyTransform, find_target_keys
from onbehalf_patcher.tree_sitter_manager import apply_edits, count_syntax_errors, parse_source

logger = logging.getLogger(__name__)


class BackupScope:
    """Backup of one file held for the duration of a transaction.

    Entering copies the file to ``<path>.bak.<pid>``. A normal exit deletes
    the backup; an exceptional exit copies it back over the file first. If
    that copy fails, RestoreError replaces the original exception and the
    backup is left on disk.
    """

    def __init__(self, store: FileStore, path: Path, uniquifier: Optional[str] = None):
        self.store = store
        self.path = Path(path)
        self.backup_path = self._unique_backup_path(uniquifier or str(os.getpid()))

    def _unique_backup_path(self, uniquifier: str) -> Path:
        candidate = self.path.with_name(f"{self.path.name}.bak.{uniquifier}")
        counter = 1
        while self.store.exists(candidate):
            candidate = self.path.with_name(f"{self.path.name}.bak.{uniquifier}.{counter}")
            counter += 1
        return candidate

    def __enter__(self) -> "BackupScope":
        try:
            self.store.copy(self.path, self.backup_path)
        except FileStoreError as e:
            raise BackupError(f"Failed to create backup {self.backup_path}: {e}", self.path) from e
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.discard()
        else:
            self.restore(exc)
        return False

    def read_original(self) -> str:
        """Read the original content from the backup, never the live file."""
        return self.store.read_text(self.backup_path)

    def discard(self) -> None:
        try:
            self.store.delete(self.backup_path)
            logger.debug(f"Deleted backup {self.backup_path}")
        except FileStoreError as e:
            logger.warning(f"Could not delete backup {self.backup_path}: {e}")

    def restore(self, cause: Optional[BaseException] = None) -> None:
        logger.info(f"Restoring {self.path} from {self.backup_path}")
        try:
            self.store.copy(self.backup_path, self.path)
        except FileStoreError as e:
            raise RestoreError(
                f"Restore from backup failed: {e} (after: {cause})",
                self.path,
                self.backup_path,
            ) from e

        try:
            self.store.delete(self.backup_path)
        except FileStoreError as e:
            logger.warning(f"Restored {self.path} but could not delete backup: {e}")


class ExtensionPatcher:
    """Removes target-key constructs from extension bundles, one file at a time."""

    def __init__(
        self,
        config: Optional[PatcherConfig] = None,
        store: Optional[FileStore] = None,
        console: Optional[Console] = None,
    ):
        """Initialize patcher.

        Args:
            config: Patcher configuration
            store: File store (default: local filesystem)
            console: Rich console for output
        """
        self.config = config or PatcherConfig()
        self.store = store or LocalFileStore()
        self.console = console or Console()
        self.transform = TargetKeyTransform()

    def patch_file(self, path: Path) -> PatchResult:
        """Patch one file, leaving it either transformed or unchanged.

        Args:
            path: File to patch

        Returns:
            PatchResult; failures are reported, never raised
        """
        path = Path(path)

        if not self.store.exists(path):
            error = MissingFileError(f"File does not exist: {path}", path)
            self.console.print(f"[bold red]✗ {error}[/]")
            return PatchResult(path=path, status=PatchStatus.FAILED, error=str(error))

        try:
            with BackupScope(self.store, path) as backup:
                self.console.print(f"[dim]Backup created:[/] {backup.backup_path}")
                result = self._patch(path, backup)
        except BackupError as e:
            logger.error(str(e))
            self.console.print(f"[bold red]✗ {e}[/]")
            return PatchResult(path=path, status=PatchStatus.FAILED, error=str(e))
        except RestoreError as e:
            logger.critical(f"{e}; original may be corrupted: {path}; backup kept at {e.backup_path}")
            self.console.print(
                Panel(
                    f"[bold red]Restore from backup failed:[/] {e}\n"
                    f"[red]Original file may be corrupted:[/] {path}\n"
                    f"[red]Backup file is at:[/] {e.backup_path}",
                    title="Manual recovery required",
                    border_style="red",
                )
            )
            return PatchResult(
                path=path,
                status=PatchStatus.RESTORE_FAILED,
                backup_path=e.backup_path,
                error=str(e),
            )
        except Exception as e:
            logger.error(f"Error patching {path}: {e}", exc_info=True)
            self.console.print(f"[bold red]✗ Error patching {path}:[/] {e}")
            self.console.print("[yellow]Restored original from backup[/]")
            return PatchResult(path=path, status=PatchStatus.FAILED, error=str(e))

        return result

    def patch_files(self, paths: Iterable[Path]) -> BatchSummary:
        """Patch files as an ordered sequence; one failure does not stop the rest."""
        summary = BatchSummary()
        for path in paths:
            self.console.rule(f"[bold]{path}")
            result = self.patch_file(path)
            if not result.success:
                self.console.print(f"[red]Failed to patch:[/] {path}")
            summary.results.append(result)

        self.console.print(
            f"\n[bold]Done.[/] Patched or unchanged: [green]{summary.success_count}[/], "
            f"failed: [red]{summary.failure_count}[/]"
        )
        return summary

    def _patch(self, path: Path, backup: BackupScope) -> PatchResult:
        """Transform and write; any exception here triggers a restore."""
        try:
            original = backup.read_original()
            source = original.encode("utf-8")
            tree = parse_source(source)
            plan = self.transform.plan(tree, source)

            if not plan.modified:
                self.console.print(f"[dim]No changes needed:[/] {path}")
                return PatchResult(path=path, status=PatchStatus.UNCHANGED, skipped=plan.skipped)

            patched = apply_edits(source, plan.edits)
            if self.config.verify_syntax:
                self._verify(path, tree, patched, plan)
            patched_text = patched.decode("utf-8")

            if self.config.show_diff or self.config.dry_run:
                self._show_diff(path, original, patched_text)

            if self.config.dry_run:
                self.console.print(
                    f"[cyan]Dry run:[/] {plan.removals} removal(s) not written to {path}"
                )
            else:
                self.store.write_text(path, patched_text)
                self.console.print(f"[green]✓ Patched:[/] {path} ({plan.removals} removal(s))")
        except TransformError:
            raise
        except Exception as e:
            raise TransformError(f"{type(e).__name__}: {e}", path) from e

        return PatchResult(
            path=path,
            status=PatchStatus.PATCHED,
            removals=plan.removals,
            skipped=plan.skipped,
            dry_run=self.config.dry_run,
        )

    def _verify(self, path: Path, tree, patched: bytes, plan: TransformPlan) -> None:
        """Reject output that parses with more syntax errors than the input."""
        new_tree = parse_source(patched)
        before = count_syntax_errors(tree)
        after = count_syntax_errors(new_tree)
        if after > before:
            raise TransformError(
                f"Patched output has {after} syntax error(s), original had {before}", path
            )

        remaining = len(find_target_keys(new_tree))
        if remaining:
            logger.info(f"{remaining} target-key construct(s) left in {path} ({len(plan.skipped)} skipped)")

    def _show_diff(self, path: Path, original: str, patched: str, context_lines: int = 3) -> None:
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            patched.splitlines(keepends=True),
            fromfile=f"a/{path.name}",
            tofile=f"b/{path.name}",
            n=context_lines,
        )
        diff_text = "".join(diff)
        if diff_text:
            syntax = Syntax(diff_text, "diff", theme="monokai", line_numbers=False)
            self.console.print(Panel(syntax, title="Diff", border_style="yellow"))
        else:
            self.console.print("[dim]No changes[/]")
