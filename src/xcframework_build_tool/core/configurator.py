"""
Prepares the generated Xcode project for a standalone framework build
"""

import logging
import shlex
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import ProjectError
from .fs_utils import remove_path, replace_with_symlink
from .models import HeaderSymlinkFix
from .package_graph import PackageGraph
from .xcodeproj import XcodeProject


INHERITED = '$(inherited)'


class ProjectConfigurator:
    """
    Applies project changes before building:
    1. Distribution settings, only on the targets being built
    2. Header search paths the project generator leaves out
    3. Public headers exposed only as nested symlinks
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def enable_distribution(self, project: XcodeProject, targets: Iterable[str], xcconfig: Path) -> List[str]:
        """
        Base every build configuration of the given targets on xcconfig

        Only targets that are both requested and present in the project are
        touched; all other targets keep their configuration.

        Returns:
            Names of the touched targets, in project order
        """
        wanted = set(targets)
        touched = [name for name in project.target_names if name in wanted]
        if not touched:
            return []

        ref_id = project.add_file_reference(xcconfig)
        for name in touched:
            for configuration in project.build_configurations(name):
                configuration['baseConfigurationReference'] = ref_id

        self.logger.info(f"Distribution settings applied to: {', '.join(touched)}")
        return touched

    def fix_header_search_paths(self, project: XcodeProject, graph: PackageGraph) -> List[str]:
        """
        Add declared header search paths missing from the project

        Each path is resolved against the target's source root. Running the
        fix again changes nothing.

        Returns:
            Names of targets whose settings were changed
        """
        changed = []

        for name in project.target_names:
            target = graph.target(name)
            if target is None or not target.header_search_paths:
                continue

            wanted = [str(Path(target.source_root) / p) for p in target.header_search_paths]
            target_changed = False

            for configuration in project.build_configurations(name):
                settings = configuration.setdefault('buildSettings', {})
                current = settings.get('HEADER_SEARCH_PATHS')
                paths = _search_paths(current)
                updated = [INHERITED] + [p for p in paths if p != INHERITED]
                updated.extend(p for p in wanted if p not in updated)
                updated = [_quoted(p) for p in updated]

                if updated != current:
                    settings['HEADER_SEARCH_PATHS'] = updated
                    target_changed = True

            if target_changed:
                changed.append(name)
                self.logger.debug(f"Header search paths fixed for {name}")

        return changed

    def fix_header_symlinks(self, graph: PackageGraph, fix: HeaderSymlinkFix) -> Optional[List[Path]]:
        """
        Flatten a target's symlinked public headers into its include directory

        Returns:
            Created links, or None when the target is not part of the graph
            (nothing is changed in that case)

        Raises:
            ProjectError: If the filesystem changes fail
        """
        target = graph.target(fix.target)
        if target is None or target.include_dir is None:
            self.logger.debug(f"Header symlink fix skipped: no {fix.target} target with public headers")
            return None

        include_dir = Path(target.include_dir)
        headers_dir = Path(target.source_root) / fix.sources_subdir
        umbrella = Path(target.package_root) / fix.umbrella_header
        links = []

        try:
            include_dir.mkdir(parents=True, exist_ok=True)

            for header in sorted(headers_dir.rglob('*.h')):
                if header.is_file():
                    links.append(replace_with_symlink(include_dir / header.name, header))

            remove_path(include_dir / fix.nested_include_dir)
            links.append(replace_with_symlink(include_dir / umbrella.name, umbrella))
        except OSError as e:
            raise ProjectError(f"Failed to fix {fix.target} headers: {e}") from e

        self.logger.info(f"Linked {len(links)} {fix.target} headers into {include_dir}")
        return links


def _search_paths(value) -> List[str]:
    """Unquoted entries of a search path setting (a list or a space separated string)"""
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    return [_unquoted(entry) for entry in value if entry]


def _unquoted(path: str) -> str:
    if len(path) >= 2 and path[0] == path[-1] == '"':
        return path[1:-1]
    return path


def _quoted(path: str) -> str:
    # Xcode splits unquoted values on whitespace
    return f'"{path}"' if any(c.isspace() for c in path) else path
