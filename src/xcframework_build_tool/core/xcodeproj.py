"""
Xcode project generation and an in-memory model of project.pbxproj
"""

import hashlib
import logging
import plistlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from .executor import Executor
from .exceptions import CommandError, ProjectError
from .models import BuildOptions
from .package_graph import PackageGraph


FRAMEWORK_PRODUCT_TYPE = 'com.apple.product-type.framework'

# swift package generate-xcodeproj was removed in Swift 5.8
SUPPORTED_TOOLCHAINS = 'Swift 5.3 to 5.7 (Xcode 12 to 14.2)'


class XcodeProject:
    """
    Object graph of a project.pbxproj file

    The file is read through ``plutil`` (which understands the legacy ASCII
    plist format Xcode writes) and saved back as an XML property list, which
    Xcode reads just as well.
    """

    PBXPROJ = 'project.pbxproj'

    def __init__(self, path: Path, data: Dict[str, Any]):
        self.path = Path(path)
        self.data = data

        if 'objects' not in data or 'rootObject' not in data:
            raise ProjectError(f"Not an Xcode project file: {self.path / self.PBXPROJ}")

    @classmethod
    def load(cls, path: Path, executor: Executor) -> 'XcodeProject':
        """
        Load the project bundle at path

        Raises:
            ProjectError: If the project is missing or cannot be parsed
        """
        pbxproj = Path(path) / cls.PBXPROJ
        if not pbxproj.exists():
            raise ProjectError(f"Project file not found: {pbxproj}")

        try:
            result = executor.run(['plutil', '-convert', 'xml1', '-o', '-', pbxproj])
        except CommandError as e:
            raise ProjectError(f"Failed to read {pbxproj}: {e}") from e

        try:
            data = plistlib.loads(result.stdout.encode('utf-8'))
        except (plistlib.InvalidFileException, ValueError) as e:
            raise ProjectError(f"Failed to parse {pbxproj}: {e}") from e

        if not isinstance(data, dict):
            raise ProjectError(f"Unexpected content in {pbxproj}")
        return cls(path, data)

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the project, by default back to where it was loaded from"""
        target = Path(path) if path else self.path
        pbxproj = target / self.PBXPROJ

        try:
            target.mkdir(parents=True, exist_ok=True)
            with open(pbxproj, 'wb') as f:
                plistlib.dump(self.data, f, fmt=plistlib.FMT_XML, sort_keys=True)
        except (OSError, TypeError) as e:
            raise ProjectError(f"Failed to save {pbxproj}: {e}") from e

        return pbxproj

    # Object graph

    @property
    def objects(self) -> Dict[str, Dict[str, Any]]:
        return self.data['objects']

    @property
    def root_object(self) -> Dict[str, Any]:
        return self.objects[self.data['rootObject']]

    def native_targets(self) -> List[Dict[str, Any]]:
        """Native targets in project order"""
        targets = []
        for object_id in self.root_object.get('targets', []):
            obj = self.objects.get(object_id)
            if obj and obj.get('isa') == 'PBXNativeTarget':
                targets.append(obj)
        return targets

    @property
    def target_names(self) -> List[str]:
        return [t.get('name', '') for t in self.native_targets()]

    @property
    def framework_target_names(self) -> List[str]:
        return [
            t.get('name', '') for t in self.native_targets()
            if t.get('productType') == FRAMEWORK_PRODUCT_TYPE
        ]

    def native_target(self, name: str) -> Optional[Dict[str, Any]]:
        return next((t for t in self.native_targets() if t.get('name') == name), None)

    def build_configurations(self, target_name: str) -> List[Dict[str, Any]]:
        """XCBuildConfiguration objects of a target (empty if it does not exist)"""
        target = self.native_target(target_name)
        if target is None:
            return []

        configuration_list = self.objects.get(target.get('buildConfigurationList', ''), {})
        return [
            self.objects[config_id]
            for config_id in configuration_list.get('buildConfigurations', [])
            if config_id in self.objects
        ]

    def add_file_reference(self, path: Path) -> str:
        """
        Add an absolute file reference to the main group

        Object IDs are derived from the path, so adding the same file twice
        returns the existing reference.
        """
        path = Path(path)
        ref_id = self._object_id('PBXFileReference', str(path))

        if ref_id not in self.objects:
            file_type = 'text.xcconfig' if path.suffix == '.xcconfig' else 'text'
            self.objects[ref_id] = {
                'isa': 'PBXFileReference',
                'lastKnownFileType': file_type,
                'name': path.name,
                'path': str(path),
                'sourceTree': '<absolute>',
            }

            main_group = self.objects.get(self.root_object.get('mainGroup', ''))
            if main_group is not None:
                children = main_group.setdefault('children', [])
                if ref_id not in children:
                    children.append(ref_id)

        return ref_id

    @staticmethod
    def _object_id(kind: str, key: str) -> str:
        return hashlib.md5(f"{kind}:{key}".encode('utf-8')).hexdigest().upper()[:24]


class ProjectGenerator:
    """Writes the distribution xcconfig and generates the package's Xcode project"""

    def __init__(
        self,
        graph: PackageGraph,
        options: BuildOptions,
        executor: Executor,
        logger: Optional[logging.Logger] = None
    ):
        self.graph = graph
        self.options = options
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    @property
    def project_path(self) -> Path:
        return self.options.project_dir / f"{self.graph.name}.xcodeproj"

    def write_distribution_xcconfig(self) -> Path:
        """Write Distribution.xcconfig into the project directory"""
        path = self.options.distribution_xcconfig_path
        lines = [
            '// Generated by xcframework-build-tool. Do not edit.',
            '',
            'BUILD_LIBRARY_FOR_DISTRIBUTION=YES',
        ]

        xcconfig = self.options.resolved_xcconfig
        if xcconfig is not None:
            lines.extend(['', f'#include "{xcconfig}"'])

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text('\n'.join(lines) + '\n')
        self.logger.debug(f"Wrote {path}")
        return path

    def generate(self) -> XcodeProject:
        """
        Generate the Xcode project and load it

        Raises:
            ProjectError: If generation fails or the result cannot be loaded
        """
        self.project_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Generating {self.project_path.name}")

        cmd = [
            'swift', 'package',
            '--package-path', self.options.resolved_package_path,
            'generate-xcodeproj',
            '--output', self.project_path
        ]
        try:
            self.executor.run(cmd, cwd=self.options.resolved_package_path)
        except CommandError as e:
            output = f"{e.stderr}\n{e.stdout}".lower()
            if 'generate-xcodeproj' in output or 'unknown subcommand' in output:
                raise ProjectError(
                    "This Swift toolchain cannot generate Xcode projects "
                    f"(swift package generate-xcodeproj). Supported: {SUPPORTED_TOOLCHAINS}"
                ) from e
            raise ProjectError(f"Failed to generate Xcode project: {e}") from e

        return XcodeProject.load(self.project_path, self.executor)
