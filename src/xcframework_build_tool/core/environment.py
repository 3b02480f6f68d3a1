"""
Developer toolchain environment for xcodebuild and swift
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from .models import ValidationIssue


class Environment:
    """Subprocess environment and toolchain checks"""

    REQUIRED_TOOLS = ('xcrun', 'swift')

    def __init__(self, developer_dir: Optional[Path] = None, base_env: Optional[Dict[str, str]] = None):
        self.developer_dir = developer_dir
        self.base_env = base_env
        self._env_cache: Optional[Dict[str, str]] = None

    def setup(self) -> Dict[str, str]:
        """Build the environment passed to every external tool"""
        if self._env_cache is not None:
            return self._env_cache

        env = dict(self.base_env) if self.base_env is not None else os.environ.copy()

        if self.developer_dir:
            env['DEVELOPER_DIR'] = str(self.developer_dir)

        # line-buffered xcodebuild output when piped
        env['NSUnbufferedIO'] = 'YES'

        self._env_cache = env
        return env

    def toolchain_issues(self) -> List[ValidationIssue]:
        """Check the developer tools needed for a build are on PATH"""
        issues = []
        path = self.setup().get('PATH')

        for tool in self.REQUIRED_TOOLS:
            if shutil.which(tool, path=path) is None:
                issues.append(ValidationIssue(
                    kind='missing_tool',
                    message=f"'{tool}' not found on PATH. Install Xcode and its command line tools.",
                    fatal=True
                ))

        if self.developer_dir and not Path(self.developer_dir).exists():
            issues.append(ValidationIssue(
                kind='developer_dir',
                message=f"DEVELOPER_DIR does not exist: {self.developer_dir}",
                fatal=True
            ))

        return issues

    def xcode_version(self) -> Optional[str]:
        """Return the 'Xcode N.N' line of xcodebuild -version, if available"""
        try:
            result = subprocess.run(
                ['xcrun', 'xcodebuild', '-version'],
                capture_output=True, encoding='utf-8', errors='replace', env=self.setup(), timeout=30
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None

        if result.returncode != 0:
            return None

        first_line = result.stdout.strip().split('\n')[0]
        return first_line or None

    def clear_cache(self):
        """Forget the cached environment"""
        self._env_cache = None
