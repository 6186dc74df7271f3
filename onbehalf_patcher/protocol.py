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

"""Patch protocol types and data structures.

Defines the core types shared by the target-key transform and the
patch transaction.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

# Header key injected by the extension into outgoing requests
TARGET_KEY = "x-onbehalf-extension-id"


class NodeKind(Enum):
    """Syntax node variants the transform dispatches on."""

    ASSIGNMENT = "assignment"
    PROPERTY = "property"
    OTHER = "other"


class RemovalKind(Enum):
    """How a matched construct is excised from the source."""

    STATEMENT = "statement"  # Whole expression statement deleted
    EMPTY_STATEMENT = "empty_statement"  # Statement replaced by ";"
    LIST_ELEMENT = "list_element"  # Element removed with one adjacent comma
    EXPRESSION = "expression"  # Optional expression slot emptied
    PROPERTY = "property"  # Object property removed with one adjacent comma


class PatchStatus(str, Enum):
    """Terminal outcome of one patch transaction."""

    UNCHANGED = "unchanged"
    PATCHED = "patched"
    FAILED = "failed"
    RESTORE_FAILED = "restore_failed"


@dataclass
class CodeEdit:
    """A byte-range replacement planned against a syntax tree."""

    start_byte: int
    end_byte: int
    new_text: str = ""
    kind: RemovalKind = RemovalKind.STATEMENT
    line: int = 0  # 1-based line of the matched node
    description: str = ""

    @property
    def is_deletion(self) -> bool:
        return self.new_text == ""

    def contains(self, other: "CodeEdit") -> bool:
        """Check if another edit lies entirely within this one."""
        return self.start_byte <= other.start_byte and other.end_byte <= self.end_byte

    def overlaps(self, other: "CodeEdit") -> bool:
        return self.start_byte < other.end_byte and other.start_byte < self.end_byte


@dataclass
class SkippedMatch:
    """A target-key match that could not be removed safely."""

    line: int
    node_type: str
    parent_type: str
    reason: str
    start_byte: int = 0
    end_byte: int = 0


@dataclass
class TransformPlan:
    """Edits and skipped matches collected from one syntax tree."""

    edits: List[CodeEdit] = field(default_factory=list)
    skipped: List[SkippedMatch] = field(default_factory=list)
    removals: int = 0  # Matches removed; fused edits can cover several

    @property
    def modified(self) -> bool:
        """The modification flag: true iff at least one removal is planned."""
        return len(self.edits) > 0


class PatchResult(BaseModel):
    """Outcome of patching a single file."""

    path: Path = Field(description="Target file path")
    status: PatchStatus = Field(description="Terminal outcome of the transaction")
    removals: int = Field(default=0, description="Number of constructs removed")
    skipped: List[SkippedMatch] = Field(
        default_factory=list, description="Matches left in place because removal was unsafe"
    )
    backup_path: Optional[Path] = Field(
        default=None, description="Backup path, set only when the backup was left on disk"
    )
    dry_run: bool = Field(default=False, description="Whether the write was suppressed")
    error: str = Field(default="", description="Error message for failed transactions")

    @property
    def success(self) -> bool:
        return self.status in (PatchStatus.UNCHANGED, PatchStatus.PATCHED)

    @property
    def needs_manual_recovery(self) -> bool:
        """The original may be corrupted and the backup still exists."""
        return self.status == PatchStatus.RESTORE_FAILED


class BatchSummary(BaseModel):
    """Ordered results for a sequence of patched files."""

    results: List[PatchResult] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len([r for r in self.results if r.success])

    @property
    def failure_count(self) -> int:
        return len([r for r in self.results if not r.success])

    @property
    def exit_code(self) -> int:
        return 1 if self.failure_count > 0 else 0
