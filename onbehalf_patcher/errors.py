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

"""Exceptions raised while patching a file."""

from pathlib import Path
from typing import Optional


class PatchError(Exception):
    """Base class for patch transaction failures."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class MissingFileError(PatchError):
    """The target file does not exist."""


class BackupError(PatchError):
    """The safety copy could not be created."""


class TransformError(PatchError):
    """Parsing, transforming, printing or writing failed after the backup was made."""


class RestoreError(PatchError):
    """Rolling back from the backup failed; manual recovery is required."""

    def __init__(self, message: str, path: Optional[Path] = None, backup_path: Optional[Path] = None):
        super().__init__(message, path)
        self.backup_path = backup_path


class FileStoreError(OSError):
    """A file store operation failed."""

    def __init__(self, operation: str, path: Path, reason: str):
        super().__init__(f"{operation} failed for {path}: {reason}")
        self.operation = operation
        self.path = path
        self.reason = reason
