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

"""Discovery of installed Copilot Chat extension bundles."""

import logging
import re
from pathlib import Path
from typing import List, Optional

from onbehalf_patcher.config import PatcherConfig

logger = logging.getLogger(__name__)


def get_extensions_paths(config: Optional[PatcherConfig] = None) -> List[Path]:
    """Return the configured extension directories that exist."""
    config = config or PatcherConfig()
    return [path for path in config.search_dirs if path.is_dir()]


def find_extension_files(config: Optional[PatcherConfig] = None) -> List[Path]:
    """Find extension bundles for every installed Copilot Chat version.

    Args:
        config: Patcher configuration (default: PatcherConfig())

    Returns:
        Bundle paths, sorted within each extension directory
    """
    config = config or PatcherConfig()
    pattern = re.compile(config.extension_pattern)
    found: List[Path] = []

    for extensions_dir in get_extensions_paths(config):
        try:
            entries = sorted(extensions_dir.iterdir())
        except OSError as e:
            logger.warning(f"Error reading directory {extensions_dir}: {e}")
            continue

        for entry in entries:
            if not entry.is_dir() or not pattern.match(entry.name):
                continue
            bundle = entry / config.bundle_relpath
            if bundle.is_file():
                logger.info(f"Found bundle: {bundle}")
                found.append(bundle)

    if not found:
        logger.warning(
            f"No {config.bundle_relpath.as_posix()} found under any extension directory "
            f"matching {config.extension_pattern}"
        )
    return found
