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

"""File store used by the patch transaction.

Every operation either succeeds or raises FileStoreError naming the
operation, so callers can tell a failed backup copy from a failed write.
"""

import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

from onbehalf_patcher.errors import FileStoreError


@runtime_checkable
class FileStore(Protocol):
    """Protocol for file stores."""

    def exists(self, path: Path) -> bool:
        ...

    def copy(self, source: Path, destination: Path) -> None:
        """Byte-identical copy of source onto destination."""
        ...

    def read_text(self, path: Path) -> str:
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Truncating UTF-8 write."""
        ...

    def delete(self, path: Path) -> None:
        ...


class LocalFileStore:
    """File store backed by the local filesystem."""

    encoding = "utf-8"

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def copy(self, source: Path, destination: Path) -> None:
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise FileStoreError("copy", Path(source), str(e)) from e

    def read_text(self, path: Path) -> str:
        try:
            # newline="" keeps CRLF line endings intact
            with open(path, encoding=self.encoding, newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileStoreError("read", Path(path), str(e)) from e

    def write_text(self, path: Path, content: str) -> None:
        try:
            with open(path, "w", encoding=self.encoding, newline="") as f:
                f.write(content)
        except (OSError, UnicodeEncodeError) as e:
            raise FileStoreError("write", Path(path), str(e)) from e

    def delete(self, path: Path) -> None:
        try:
            Path(path).unlink()
        except OSError as e:
            raise FileStoreError("delete", Path(path), str(e)) from e
