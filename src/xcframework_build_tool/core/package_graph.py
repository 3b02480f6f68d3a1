"""Resolved package graph.

The graph is read from the package manager's machine readable output
(``swift package describe``, ``dump-package`` and ``show-dependencies``)
and exposed through the small read-only :class:`PackageGraph` interface the
rest of the pipeline depends on.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .executor import Executor
from .exceptions import CommandError, XCFrameworkError
from .models import GraphTarget, Product, ProductType


class PackageGraph(Protocol):
    """Read-only view over a resolved package graph"""

    name: str
    root: Path

    def product_names(self) -> List[str]:
        ...

    def products(self) -> List[Product]:
        ...

    def target_names(self) -> List[str]:
        ...

    def target(self, name: str) -> Optional[GraphTarget]:
        ...

    def declared_platforms(self) -> List[str]:
        ...

    def version_of_product(self, name: str) -> Optional[str]:
        ...


class SwiftPackageGraph:
    """In-memory package graph of a root package and its resolved dependencies"""

    def __init__(
        self,
        name: str,
        root: Path,
        products: Iterable[Product],
        targets: Iterable[GraphTarget],
        platforms: Optional[Iterable[str]] = None,
        dependency_versions: Optional[Dict[str, str]] = None
    ):
        self.name = name
        self.root = Path(root)
        self._products = list(products)
        self._targets: Dict[str, GraphTarget] = {}
        for target in targets:
            # first declaration wins; root package targets are added first
            self._targets.setdefault(target.name, target)
        self._platforms = [p.lower() for p in (platforms or [])]
        self._dependency_versions = dict(dependency_versions or {})

    def product_names(self) -> List[str]:
        """Names of the root package's products, in declaration order"""
        return [p.name for p in self._products]

    def products(self) -> List[Product]:
        return list(self._products)

    def product(self, name: str) -> Optional[Product]:
        return next((p for p in self._products if p.name == name), None)

    def target_names(self) -> List[str]:
        """Names of every target in the graph, dependencies included"""
        return list(self._targets)

    def targets(self) -> List[GraphTarget]:
        return list(self._targets.values())

    def target(self, name: str) -> Optional[GraphTarget]:
        """Look up a target by name; None when the graph has no such target"""
        return self._targets.get(name)

    def declared_platforms(self) -> List[str]:
        """Platform names declared by the root package (empty = no restriction)"""
        return list(self._platforms)

    def version_of_product(self, name: str) -> Optional[str]:
        """Resolved version of the dependency package that owns a product's target

        Products of the root package have no resolved version and return None.
        """
        target = self.target(name)
        if target is not None:
            package = target.package
        else:
            product = self.product(name)
            package = product.package if product is not None else None

        if not package or package == self.name:
            return None
        return self._dependency_versions.get(package)

    # Construction from package manager output

    @classmethod
    def from_json(
        cls,
        describe: Dict[str, Any],
        dump: Optional[Dict[str, Any]] = None,
        dependencies: Optional[List[Dict[str, Any]]] = None
    ) -> 'SwiftPackageGraph':
        """Build a graph from ``describe`` and ``dump-package`` JSON documents

        Args:
            describe: Output of ``swift package describe --type json`` for the root package
            dump: Output of ``swift package dump-package`` for the root package
            dependencies: One dict per resolved dependency with keys
                ``describe``, ``dump`` and optionally ``version``

        Returns:
            SwiftPackageGraph instance

        Raises:
            ValueError: If the describe document is missing required fields
        """
        if 'name' not in describe:
            raise ValueError("Package description is missing the 'name' field")

        name = describe['name']
        root = Path(describe.get('path', '.'))
        products = [_parse_product(p, name) for p in describe.get('products', [])]
        targets = _parse_targets(describe, dump or {})
        platforms = [p.get('name', '') for p in describe.get('platforms', []) if p.get('name')]

        versions = {}
        for dependency in dependencies or []:
            dep_describe = dependency.get('describe') or {}
            if 'name' not in dep_describe:
                continue
            targets.extend(_parse_targets(dep_describe, dependency.get('dump') or {}))
            if dependency.get('version'):
                versions[dep_describe['name']] = dependency['version']

        return cls(name, root, products, targets, platforms, versions)


def _parse_product(data: Dict[str, Any], package: str) -> Product:
    product_type = data.get('type', {})
    if isinstance(product_type, dict) and product_type:
        type_name = next(iter(product_type))
    elif isinstance(product_type, str):
        type_name = product_type
    else:
        type_name = 'other'

    try:
        parsed_type = ProductType(type_name)
    except ValueError:
        parsed_type = ProductType.OTHER

    return Product(
        name=data['name'],
        type=parsed_type,
        targets=list(data.get('targets', [])),
        package=package
    )


def _parse_targets(describe: Dict[str, Any], dump: Dict[str, Any]) -> List[GraphTarget]:
    package = describe['name']
    package_root = Path(describe.get('path', '.'))
    manifest_targets = {t.get('name'): t for t in dump.get('targets', [])}
    targets = []

    for data in describe.get('targets', []):
        target_name = data['name']
        manifest = manifest_targets.get(target_name, {})
        source_root = package_root / data.get('path', f"Sources/{target_name}")
        module_type = data.get('module_type', 'SwiftTarget')

        include_dir = None
        if module_type == 'ClangTarget':
            include_dir = source_root / (manifest.get('publicHeadersPath') or 'include')

        targets.append(GraphTarget(
            name=target_name,
            kind=data.get('type', 'library'),
            module_type=module_type,
            package=package,
            package_root=package_root,
            source_root=source_root,
            include_dir=include_dir,
            header_search_paths=_header_search_paths(manifest),
            has_conditional_dependencies=_has_conditional_dependencies(manifest)
        ))

    return targets


def _header_search_paths(manifest_target: Dict[str, Any]) -> List[str]:
    """Collect ``.headerSearchPath(...)`` values from a dump-package target"""
    paths = []
    for setting in manifest_target.get('settings', []):
        # SwiftPM 5.9+: {"kind": {"headerSearchPath": {"_0": "path"}}, "tool": "c"}
        kind = setting.get('kind')
        if isinstance(kind, dict) and 'headerSearchPath' in kind:
            value = kind['headerSearchPath']
            if isinstance(value, dict):
                value = value.get('_0')
            if value:
                paths.append(value)
            continue
        # older: {"name": "headerSearchPath", "tool": "c", "value": ["path"]}
        if setting.get('name') == 'headerSearchPath':
            paths.extend(v for v in setting.get('value', []) if v)

    return list(dict.fromkeys(paths))


def _has_conditional_dependencies(manifest_target: Dict[str, Any]) -> bool:
    for dependency in manifest_target.get('dependencies', []):
        for value in dependency.values():
            if isinstance(value, list) and value and isinstance(value[-1], dict):
                if value[-1].get('platformNames'):
                    return True
    return False


class PackageGraphLoader:
    """Loads a SwiftPackageGraph by running the package manager"""

    def __init__(self, executor: Executor, logger: Optional[logging.Logger] = None):
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    def load(self, package_path: Path) -> SwiftPackageGraph:
        """Resolve and describe the package at package_path and its dependencies

        Raises:
            XCFrameworkError: If the package manager fails or returns invalid JSON
        """
        package_path = Path(package_path).resolve()
        self.logger.info(f"Loading package graph: {package_path}")

        describe = self._swift_json(package_path, ['describe', '--type', 'json'])
        dump = self._swift_json(package_path, ['dump-package'])
        tree = self._swift_json(package_path, ['show-dependencies', '--format', 'json'])

        dependencies = []
        seen = {package_path}
        for node in _walk_dependencies(tree):
            dep_path = Path(node.get('path', '')).resolve() if node.get('path') else None
            if dep_path is None or dep_path in seen or not dep_path.exists():
                continue
            seen.add(dep_path)
            self.logger.debug(f"Describing dependency {node.get('name')}: {dep_path}")
            dependencies.append({
                'describe': self._swift_json(dep_path, ['describe', '--type', 'json']),
                'dump': self._swift_json(dep_path, ['dump-package']),
                'version': _dependency_version(node)
            })

        graph = SwiftPackageGraph.from_json(describe, dump, dependencies)
        self.logger.info(
            f"Loaded package '{graph.name}': {len(graph.product_names())} products, "
            f"{len(graph.target_names())} targets"
        )
        return graph

    def _swift_json(self, package_path: Path, args: List[str]) -> Dict[str, Any]:
        cmd = ['swift', 'package', '--package-path', str(package_path)] + args
        try:
            result = self.executor.run(cmd, cwd=package_path)
        except CommandError as e:
            raise XCFrameworkError(f"Failed to read package information: {e}") from e

        # swift package may print resolution progress before the JSON document
        output = result.stdout
        start = output.find('{')
        if start < 0:
            raise XCFrameworkError(f"No JSON in output of: {result.command}")
        try:
            return json.loads(output[start:])
        except json.JSONDecodeError as e:
            raise XCFrameworkError(f"Invalid JSON in output of {result.command}: {e}") from e


def _walk_dependencies(node: Dict[str, Any]):
    for child in node.get('dependencies', []):
        yield child
        yield from _walk_dependencies(child)


def _dependency_version(node: Dict[str, Any]) -> Optional[str]:
    version = node.get('version')
    if not version or version == 'unspecified':
        return None
    return version
