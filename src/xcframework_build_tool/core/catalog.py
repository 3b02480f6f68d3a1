"""
Product and platform selection over a resolved package graph
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import InvalidProductsError, NoEligibleProductsError, UnsupportedPlatformsError
from .models import ValidationIssue
from .package_graph import PackageGraph
from .platform import SDK, TargetPlatform


# Target kinds that cannot be turned into a framework target
UNBUILDABLE_TARGET_KINDS = {
    'binary': "Binary targets are not supported",
    'system-target': "System library targets are not supported",
}


class ProductCatalog:
    """
    Resolves which products to build and for which SDKs
    """

    def __init__(self, graph: PackageGraph, logger: Optional[logging.Logger] = None):
        self.graph = graph
        self.logger = logger or logging.getLogger(__name__)

    def library_product_names(self) -> List[str]:
        """Library products of the root package, in declaration order"""
        return [p.name for p in self.graph.products() if p.is_library]

    def eligible_product_names(
        self,
        requested: Optional[Sequence[str]] = None,
        project_targets: Optional[Iterable[str]] = None
    ) -> List[str]:
        """
        Products to build in this run

        Args:
            requested: Product names asked for (empty = every library product)
            project_targets: Framework target names of the generated project;
                when given, every eligible product must have one

        Returns:
            Ordered, de-duplicated product names

        Raises:
            InvalidProductsError: A requested name is not a library product,
                or has no target in the generated project
            NoEligibleProductsError: Nothing is left to build
        """
        libraries = self.library_product_names()

        if requested:
            names = list(dict.fromkeys(requested))
            invalid = [name for name in names if name not in libraries]
            if invalid:
                raise InvalidProductsError(invalid)
        else:
            names = libraries

        if project_targets is not None:
            available = set(project_targets)
            missing = [name for name in names if name not in available]
            if missing:
                raise InvalidProductsError(missing, reason="no framework target in the generated project")

        if not names:
            raise NoEligibleProductsError()

        self.logger.debug(f"Eligible products: {', '.join(names)}")
        return names

    def supported_platforms(self, requested: Optional[Sequence[TargetPlatform]] = None) -> List[TargetPlatform]:
        """
        Platforms to build for

        A package that declares no platforms supports all of them.

        Raises:
            UnsupportedPlatformsError: A requested platform is not supported by the package
        """
        declared = set(self.graph.declared_platforms())
        if declared:
            supported = [p for p in TargetPlatform if p.package_platform_name in declared]
        else:
            supported = list(TargetPlatform)

        if not requested:
            return supported

        platforms = list(dict.fromkeys(requested))
        unsupported = [p for p in platforms if p not in supported]
        if unsupported:
            raise UnsupportedPlatformsError(
                [p.display_name for p in unsupported],
                [p.display_name for p in supported]
            )
        return platforms

    def sdks(self, platforms: Sequence[TargetPlatform], exclude_simulators: bool = False) -> List[SDK]:
        """Flatten platforms into their SDKs, in platform declaration order"""
        sdks = [sdk for platform in platforms for sdk in platform.sdks]
        if exclude_simulators:
            sdks = self.exclude_simulator_sdks(sdks)
        return sdks

    @staticmethod
    def exclude_simulator_sdks(sdks: Iterable[SDK]) -> List[SDK]:
        return [sdk for sdk in sdks if 'simulator' not in sdk.destination.lower()]

    def describe_products(self) -> List[Dict]:
        """Summary of every product for display"""
        return [
            {
                'name': product.name,
                'type': product.type.value,
                'targets': list(product.targets),
                'eligible': product.is_library,
            }
            for product in self.graph.products()
        ]


class PackageValidator:
    """Checks a package can be built into XCFrameworks before anything runs"""

    def __init__(self, graph: PackageGraph):
        self.graph = graph

    def validate(self) -> List[ValidationIssue]:
        """
        Collect fatal and advisory issues for the root package's targets

        Returns:
            List of ValidationIssue, fatal ones first in declaration order
        """
        issues = []
        advisories = []

        for name in self.graph.target_names():
            target = self.graph.target(name)
            if target is None or target.package != self.graph.name:
                continue

            if target.kind in UNBUILDABLE_TARGET_KINDS:
                issues.append(ValidationIssue(
                    kind=target.kind,
                    message=f"{UNBUILDABLE_TARGET_KINDS[target.kind]}: {target.name}",
                    fatal=True
                ))

            if target.has_conditional_dependencies:
                advisories.append(ValidationIssue(
                    kind='conditional-dependency',
                    message=(
                        f"Target {target.name} has platform-conditional dependencies; "
                        "they are linked for every platform in the generated project"
                    ),
                    fatal=False
                ))

        return issues + advisories
