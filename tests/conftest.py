"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration for all tests, including a
fake executor that stands in for xcodebuild, swift, plutil and ditto by
producing their on-disk results.
"""

import json
import plistlib
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, List, Optional, Sequence

import pytest

from xcframework_build_tool.core.executor import CommandResult, Executor
from xcframework_build_tool.core.package_graph import SwiftPackageGraph
from xcframework_build_tool.core.platform import SDK, TargetPlatform


FRAMEWORK_TYPE = 'com.apple.product-type.framework'
TOOL_TYPE = 'com.apple.product-type.tool'


def find_sdk(args: Sequence[str]) -> SDK:
    """SDK selected by an xcodebuild command line (-sdk plus variant settings)"""
    sdk_name = args[args.index('-sdk') + 1]
    candidates = [
        sdk for platform in TargetPlatform for sdk in platform.sdks
        if sdk.sdk_name == sdk_name and all(f"{n}={v}" in args for n, v in sdk.build_settings)
    ]
    if not candidates:
        raise KeyError(sdk_name)
    return max(candidates, key=lambda sdk: len(sdk.build_settings))


def make_project_data(framework_targets: Sequence[str], tool_targets: Sequence[str] = ()) -> Dict[str, Any]:
    """Minimal project.pbxproj object graph with Debug and Release configurations per target"""
    objects: Dict[str, Any] = {
        'G0000': {'isa': 'PBXGroup', 'children': [], 'sourceTree': '<group>'},
    }
    target_ids = []
    targets = [(name, FRAMEWORK_TYPE) for name in framework_targets]
    targets += [(name, TOOL_TYPE) for name in tool_targets]

    for index, (name, product_type) in enumerate(targets):
        target_id, list_id = f'T{index:04d}', f'L{index:04d}'
        debug_id, release_id = f'D{index:04d}', f'R{index:04d}'
        objects[debug_id] = {
            'isa': 'XCBuildConfiguration', 'name': 'Debug', 'buildSettings': {'PRODUCT_NAME': name}
        }
        objects[release_id] = {
            'isa': 'XCBuildConfiguration', 'name': 'Release', 'buildSettings': {'PRODUCT_NAME': name}
        }
        objects[list_id] = {'isa': 'XCConfigurationList', 'buildConfigurations': [debug_id, release_id]}
        objects[target_id] = {
            'isa': 'PBXNativeTarget',
            'name': name,
            'productType': product_type,
            'buildConfigurationList': list_id,
        }
        target_ids.append(target_id)

    objects['P0000'] = {'isa': 'PBXProject', 'mainGroup': 'G0000', 'targets': target_ids}
    return {
        'archiveVersion': '1',
        'classes': {},
        'objectVersion': '46',
        'objects': objects,
        'rootObject': 'P0000',
    }


def tree_snapshot(root: Path) -> Dict[str, bytes]:
    """Relative path -> content of every file under root"""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(Path(root).rglob('*'))
        if path.is_file()
    }


class FakeExecutor(Executor):
    """
    Executor that simulates the developer tools on the filesystem

    - ``swift package generate-xcodeproj`` writes an XML project.pbxproj
    - ``plutil -convert xml1`` returns the project file's contents
    - ``xcodebuild ... build`` creates a .framework and .dSYM per target
    - ``xcodebuild -create-xcframework`` copies the slices into the output
    - ``ditto -c -k --keepParent`` writes a zip archive
    """

    def __init__(
        self,
        project_targets: Sequence[str] = ('Kit', 'KitUI', 'DepCore'),
        tool_targets: Sequence[str] = ('kit-cli',),
        fail_destinations: Iterable[str] = (),
        missing_products: Iterable[str] = (),
        merge_stderr: Optional[str] = None,
        swift_responses: Optional[Dict[str, Any]] = None
    ):
        super().__init__()
        self.project_targets = list(project_targets)
        self.tool_targets = list(tool_targets)
        self.fail_destinations = set(fail_destinations)
        self.missing_products = set(missing_products)
        self.merge_stderr = merge_stderr
        self.swift_responses = swift_responses or {}
        self.commands: List[List[str]] = []

    # Executor interface

    def run(self, cmd, cwd=None, timeout=None, retries=1, check=True) -> CommandResult:
        args = self._normalize(cmd)
        self.commands.append(args)

        if args[:2] == ['swift', 'package']:
            result = self._swift_package(args)
        elif args[0] == 'plutil':
            result = self._result(args, stdout=Path(args[-1]).read_text())
        elif args[:3] == ['xcrun', 'xcodebuild', '-create-xcframework']:
            result = self._create_xcframework(args)
        elif args[0] == 'ditto':
            result = self._ditto(args)
        else:
            result = self._result(args, returncode=127, stderr=f"command not found: {args[0]}")

        self.history.append(result)
        if check and not result.success:
            raise self.error_for(result)
        return result

    def stream(self, cmd, cwd=None) -> CommandResult:
        args = self._normalize(cmd)
        self.commands.append(args)

        if args[-1] == 'build':
            result = self._build(args)
        else:
            result = self._result(args)

        self.history.append(result)
        return result

    # Helpers for tests

    def commands_matching(self, *words: str) -> List[List[str]]:
        return [c for c in self.commands if all(w in c for w in words)]

    @property
    def build_commands(self) -> List[List[str]]:
        return [c for c in self.commands if c[-1] == 'build' and 'xcodebuild' in c]

    @property
    def merge_commands(self) -> List[List[str]]:
        return self.commands_matching('-create-xcframework')

    # Simulations

    @staticmethod
    def _result(args, returncode=0, stdout='', stderr='') -> CommandResult:
        return CommandResult(' '.join(args), returncode, stdout, stderr)

    def _swift_package(self, args: List[str]) -> CommandResult:
        if 'generate-xcodeproj' in args:
            output = Path(args[args.index('--output') + 1])
            output.mkdir(parents=True, exist_ok=True)
            with open(output / 'project.pbxproj', 'wb') as f:
                plistlib.dump(make_project_data(self.project_targets, self.tool_targets), f)
            return self._result(args, stdout=f"generated: {output}")

        package_path = args[args.index('--package-path') + 1]
        subcommand = args[4]
        response = self.swift_responses.get((package_path, subcommand))
        if response is None:
            return self._result(args, returncode=1, stderr=f"error: no response for {subcommand}")
        return self._result(args, stdout=json.dumps(response))

    def _build(self, args: List[str]) -> CommandResult:
        sdk = find_sdk(args)
        configuration = args[args.index('-configuration') + 1]
        build_dir = Path(next(a for a in args if a.startswith('BUILD_DIR=')).split('=', 1)[1])
        targets = [args[i + 1] for i, a in enumerate(args) if a == '-target']

        if sdk.destination in self.fail_destinations:
            return self._result(args, returncode=65, stdout='** BUILD FAILED **')

        products_dir = build_dir / sdk.products_folder(configuration)
        products_dir.mkdir(parents=True, exist_ok=True)

        for target in targets:
            if target in self.missing_products:
                continue
            framework = products_dir / f"{target}.framework"
            framework.mkdir(parents=True, exist_ok=True)
            (framework / target).write_text(f"{target} binary for {sdk.slice_key}\n")
            dwarf = products_dir / f"{target}.framework.dSYM" / 'Contents' / 'Resources' / 'DWARF'
            dwarf.mkdir(parents=True, exist_ok=True)
            (dwarf / target).write_text(f"{target} symbols for {sdk.slice_key}\n")

        return self._result(args, stdout='** BUILD SUCCEEDED **')

    def _create_xcframework(self, args: List[str]) -> CommandResult:
        if self.merge_stderr is not None:
            return self._result(args, returncode=70, stderr=self.merge_stderr)

        output = Path(args[args.index('-output') + 1])
        frameworks = [Path(args[i + 1]) for i, a in enumerate(args) if a == '-framework']
        symbols = [Path(args[i + 1]) for i, a in enumerate(args) if a == '-debug-symbols']

        libraries = []
        for framework in frameworks:
            identifier = framework.parent.name
            slice_dir = output / identifier
            shutil.copytree(framework, slice_dir / framework.name)
            libraries.append({'LibraryIdentifier': identifier, 'LibraryPath': framework.name})

        for dsym in symbols:
            shutil.copytree(dsym, output / dsym.parent.name / 'dSYMs' / dsym.name)

        with open(output / 'Info.plist', 'wb') as f:
            plistlib.dump({
                'AvailableLibraries': libraries,
                'CFBundlePackageType': 'XFWK',
                'XCFrameworkFormatVersion': '1.0',
            }, f)

        return self._result(args, stdout=f"xcframework successfully written out to: {output}")

    def _ditto(self, args: List[str]) -> CommandResult:
        source, archive = Path(args[-2]), Path(args[-1])
        with zipfile.ZipFile(archive, 'w') as zf:
            for path in sorted(source.rglob('*')):
                if path.is_file():
                    zf.write(path, str(path.relative_to(source.parent)))
        return self._result(args)


@pytest.fixture
def temp_workspace() -> Generator[Path, None, None]:
    """Create a temporary workspace for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        workspace = Path(tmpdir).resolve()
        yield workspace


@pytest.fixture
def package_dir(temp_workspace: Path) -> Path:
    """A Swift package directory with a few source files."""
    package = temp_workspace / 'Kit'
    (package / 'Sources' / 'Kit').mkdir(parents=True)
    (package / 'Sources' / 'Kit' / 'Kit.swift').write_text('public struct Kit {}\n')
    (package / 'Sources' / 'KitUI' / 'include').mkdir(parents=True)
    (package / 'Sources' / 'KitUI' / 'include' / 'KitUI.h').write_text('#import <Foundation/Foundation.h>\n')
    (package / 'Package.swift').write_text('// swift-tools-version:5.3\n')
    return package


@pytest.fixture
def sample_describe(package_dir: Path) -> Dict[str, Any]:
    """Sample `swift package describe --type json` output."""
    return {
        "name": "Kit",
        "path": str(package_dir),
        "platforms": [
            {"name": "ios", "version": "13.0"},
            {"name": "macos", "version": "10.15"},
        ],
        "products": [
            {"name": "Kit", "targets": ["Kit"], "type": {"library": ["automatic"]}},
            {"name": "KitUI", "targets": ["KitUI"], "type": {"library": ["automatic"]}},
            {"name": "kit-cli", "targets": ["KitCLI"], "type": {"executable": None}},
        ],
        "targets": [
            {"name": "Kit", "path": "Sources/Kit", "type": "library", "module_type": "SwiftTarget"},
            {"name": "KitUI", "path": "Sources/KitUI", "type": "library", "module_type": "ClangTarget"},
            {"name": "KitCLI", "path": "Sources/KitCLI", "type": "executable", "module_type": "SwiftTarget"},
        ],
    }


@pytest.fixture
def sample_dump() -> Dict[str, Any]:
    """Sample `swift package dump-package` output."""
    return {
        "name": "Kit",
        "targets": [
            {"name": "Kit", "dependencies": [], "settings": []},
            {
                "name": "KitUI",
                "publicHeadersPath": "include",
                "dependencies": [
                    {"byName": ["Kit", None]},
                    {"product": ["DepCore", "Dep", None, {"platformNames": ["ios"]}]},
                ],
                "settings": [
                    {"tool": "c", "kind": {"headerSearchPath": {"_0": "private"}}},
                ],
            },
        ],
    }


@pytest.fixture
def sample_dependency(temp_workspace: Path) -> Dict[str, Any]:
    """A resolved dependency with a version."""
    return {
        "describe": {
            "name": "Dep",
            "path": str(temp_workspace / 'checkouts' / 'Dep'),
            "products": [{"name": "DepCore", "targets": ["DepCore"], "type": {"library": ["automatic"]}}],
            "targets": [
                {"name": "DepCore", "path": "Sources/DepCore", "type": "library", "module_type": "SwiftTarget"},
            ],
        },
        "dump": {"targets": []},
        "version": "1.2.0",
    }


@pytest.fixture
def package_graph(sample_describe, sample_dump, sample_dependency) -> SwiftPackageGraph:
    """Resolved graph of the sample package and its dependency."""
    return SwiftPackageGraph.from_json(sample_describe, sample_dump, [sample_dependency])


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Executor simulating the developer tools."""
    return FakeExecutor()


@pytest.fixture
def executor_factory():
    """FakeExecutor class, for tests that need non-default behaviour."""
    return FakeExecutor


@pytest.fixture
def project_factory():
    """Builds project object graphs from target names."""
    return make_project_data


@pytest.fixture
def snapshot():
    """Relative path -> bytes of every file under a directory."""
    return tree_snapshot


@pytest.fixture
def project_data() -> Dict[str, Any]:
    """Project object graph with framework targets Kit, KitUI and DepCore."""
    return make_project_data(['Kit', 'KitUI', 'DepCore'], ['kit-cli'])


@pytest.fixture
def capture_logs(caplog):
    """Fixture to capture log messages during tests."""
    with caplog.at_level("DEBUG"):
        yield caplog


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (full pipeline with simulated tools)")
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")
