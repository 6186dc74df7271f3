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

"""Patcher configuration."""

import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

ENV_EXTENSION_DIRS = "ONBEHALF_PATCHER_EXTENSION_DIRS"


def default_extension_dirs() -> List[Path]:
    """Extension directories of VS Code and VS Code Insiders.

    The layout is the same on Windows, macOS and Linux.
    """
    home = Path.home()
    return [
        home / ".vscode" / "extensions",
        home / ".vscode-insiders" / "extensions",
    ]


class PatcherConfig(BaseModel):
    """Configuration for discovery and patching."""

    # Discovery
    extension_dirs: List[Path] = Field(
        default_factory=default_extension_dirs,
        description="Editor extension directories searched for bundles",
    )
    extra_extension_dirs: List[Path] = Field(
        default_factory=list, description="Additional directories searched after the defaults"
    )
    extension_pattern: str = Field(
        default=r"^github\.copilot-chat-[\d.]+$",
        description="Regex matched against extension directory names",
    )
    bundle_relpath: Path = Field(
        default=Path("dist") / "extension.js",
        description="Bundle path relative to the extension directory",
    )

    # Patching
    verify_syntax: bool = Field(
        default=True, description="Reject output that parses with more errors than the input"
    )
    dry_run: bool = Field(default=False, description="Report changes without writing them")
    show_diff: bool = Field(default=False, description="Render a diff of each change")

    @property
    def search_dirs(self) -> List[Path]:
        """All configured extension directories, defaults first, without duplicates."""
        seen = set()
        dirs = []
        for path in [*self.extension_dirs, *self.extra_extension_dirs]:
            if path not in seen:
                seen.add(path)
                dirs.append(path)
        return dirs

    @classmethod
    def from_env(cls, **overrides) -> "PatcherConfig":
        """Build a config, adding extra extension directories from the environment."""
        raw = os.environ.get(ENV_EXTENSION_DIRS, "")
        extra = [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]
        if extra:
            overrides["extra_extension_dirs"] = [*extra, *overrides.get("extra_extension_dirs", [])]
        return cls(**overrides)
