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

"""Shared fixtures for patcher tests."""

import io
import shutil
from pathlib import Path

import pytest
from rich.console import Console

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def console():
    """Console writing to a buffer instead of the terminal."""
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def sample_bundle(tmp_path):
    """Writable copy of the sample extension bundle."""
    target = tmp_path / "extension.js"
    shutil.copyfile(FIXTURES_DIR / "extension_sample.js", target)
    return target


@pytest.fixture
def backups_of():
    """Return a function listing backup files left next to a path."""

    def _backups_of(path: Path) -> list:
        return sorted(path.parent.glob(f"{path.name}.bak.*"))

    return _backups_of
