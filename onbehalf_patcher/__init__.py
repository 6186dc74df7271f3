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

"""Copilot Chat extension bundle patcher.

Removes the x-onbehalf-extension-id header from the GitHub Copilot Chat
extension's bundled script, using a tree-sitter syntax tree to find
header assignments and object properties and a backup/restore transaction
to write the result.

Package Structure:
    transaction.py          - ExtensionPatcher and BackupScope (the patch transaction)
    transforms.py           - TargetKeyTransform visitor planning removals
    tree_sitter_manager.py  - Parser, query runner and edit printer
    store.py                - File store used by the transaction
    discovery.py            - Locates installed extension bundles
    config.py               - PatcherConfig
    cli.py                  - onbehalf-patcher command

Usage:
    from onbehalf_patcher import ExtensionPatcher

    result = ExtensionPatcher().patch_file(path)
    if not result.success:
        ...
"""

from onbehalf_patcher.config import PatcherConfig
from onbehalf_patcher.discovery import find_extension_files, get_extensions_paths
from onbehalf_patcher.errors import (
    BackupError,
    FileStoreError,
    MissingFileError,
    PatchError,
    RestoreError,
    TransformError,
)
from onbehalf_patcher.protocol import (
    TARGET_KEY,
    BatchSummary,
    PatchResult,
    PatchStatus,
)
from onbehalf_patcher.store import FileStore, LocalFileStore
from onbehalf_patcher.transaction import BackupScope, ExtensionPatcher
from onbehalf_patcher.transforms import TargetKeyTransform

__all__ = [
    "TARGET_KEY",
    "BackupError",
    "BackupScope",
    "BatchSummary",
    "ExtensionPatcher",
    "FileStore",
    "FileStoreError",
    "LocalFileStore",
    "MissingFileError",
    "PatchError",
    "PatchResult",
    "PatchStatus",
    "PatcherConfig",
    "RestoreError",
    "TargetKeyTransform",
    "TransformError",
    "find_extension_files",
    "get_extensions_paths",
]
