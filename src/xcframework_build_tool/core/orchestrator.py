"""
Complete XCFramework pipeline
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .build_manager import BuildOrchestrator
from .catalog import PackageValidator, ProductCatalog
from .configurator import ProjectConfigurator
from .environment import Environment
from .exceptions import PackageValidationError, XCFrameworkError
from .executor import Executor
from .merger import ArtifactMerger
from .models import BuildOptions, MergedBundle, PackagedArtifact, ValidationIssue
from .package_graph import PackageGraph, PackageGraphLoader
from .packaging import PackagingAdapter
from .platform import SDK
from .xcodebuild import XcodeBuilder
from .xcodeproj import ProjectGenerator


@dataclass
class OrchestrationResult:
    """Result of one XCFramework run"""
    products: List[str]
    sdks: List[SDK]
    bundles: List[MergedBundle]
    packaged: List[PackagedArtifact] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    pointer_file: Optional[Path] = None


class FrameworkOrchestrator:
    """
    Runs the pipeline phases in order:
    1. Validate - toolchain, package, products and platforms
    2. Configure - header fixes, project generation, distribution settings
    3. Build - one xcodebuild per SDK
    4. Merge - one XCFramework per product
    5. Package - zip, checksum and pointer file (optional)

    Every phase raises on a fatal error; nothing is merged unless every
    SDK built every product.
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        environment: Optional[Environment] = None,
        graph: Optional[PackageGraph] = None,
        check_toolchain: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.environment = environment or Environment()
        self.executor = executor or Executor(env=self.environment.setup(), logger=self.logger)
        self.check_toolchain = check_toolchain
        self._graph = graph
        self.progress_callback: Optional[Callable[[str, int], None]] = None

    def set_progress_callback(self, callback: Callable[[str, int], None]):
        """Set callback for progress updates (message, percentage)"""
        self.progress_callback = callback

    def _report_progress(self, message: str, percentage: int):
        """Report progress to callback if set"""
        if self.progress_callback:
            self.progress_callback(message, percentage)
        self.logger.info(f"[{percentage}%] {message}")

    def load_graph(self, options: BuildOptions) -> PackageGraph:
        if self._graph is None:
            loader = PackageGraphLoader(self.executor, self.logger)
            self._graph = loader.load(options.resolved_package_path)
        return self._graph

    def validate(self, graph: PackageGraph) -> List[ValidationIssue]:
        """
        Check the toolchain and package

        Returns:
            Advisory issues (already logged)

        Raises:
            PackageValidationError: If any issue is fatal
        """
        issues = []
        if self.check_toolchain:
            issues.extend(self.environment.toolchain_issues())
        issues.extend(PackageValidator(graph).validate())

        advisories = [issue for issue in issues if not issue.fatal]
        for issue in advisories:
            self.logger.warning(issue.message)

        fatal = [issue for issue in issues if issue.fatal]
        if fatal:
            raise PackageValidationError(fatal)

        return advisories

    def list_products(self, options: BuildOptions) -> List[Dict]:
        """Describe the package's products without building anything"""
        return ProductCatalog(self.load_graph(options), self.logger).describe_products()

    def run(self, options: BuildOptions) -> OrchestrationResult:
        """
        Build XCFrameworks as described by options

        Returns:
            OrchestrationResult with the merged bundles and packaged archives

        Raises:
            XCFrameworkError: On any fatal validation, project, build, merge
                or packaging error
        """
        # Phase 1: Validation (0-15%)
        self._report_progress("Loading package graph", 2)
        graph = self.load_graph(options)

        self._report_progress("Validating package", 5)
        advisories = self.validate(graph)
        warnings = [issue.message for issue in advisories]

        catalog = ProductCatalog(graph, self.logger)
        platforms = catalog.supported_platforms(options.platforms)
        catalog.eligible_product_names(options.products)
        sdks = catalog.sdks(platforms, options.exclude_simulators)
        if not sdks:
            raise XCFrameworkError(f"Package {graph.name} supports none of the buildable platforms")

        self._report_progress(
            f"Platforms: {', '.join(p.display_name for p in platforms)} ({len(sdks)} SDKs)", 15
        )

        # Phase 2: Project configuration (15-25%)
        configurator = ProjectConfigurator(self.logger)

        if options.fix_header_symlinks:
            if configurator.fix_header_symlinks(graph, options.header_symlink_fix) is None:
                self.logger.info(f"No {options.header_symlink_fix.target} target, header symlink fix skipped")

        self._report_progress("Generating Xcode project", 18)
        generator = ProjectGenerator(graph, options, self.executor, self.logger)
        xcconfig = generator.write_distribution_xcconfig()
        project = generator.generate()

        products = catalog.eligible_product_names(options.products, project.framework_target_names)

        # stack evolution passes the setting to every target on the command line
        if options.apply_distribution_settings and not options.stack_evolution:
            configurator.enable_distribution(project, products, xcconfig)

        if options.fix_header_search_paths:
            configurator.fix_header_search_paths(project, graph)

        project.save()
        self._report_progress(f"Project configured for {len(products)} products", 25)

        # Phase 3: Platform builds (25-75%)
        builder = XcodeBuilder(generator.project_path, options, self.executor, self.logger)
        build_orchestrator = BuildOrchestrator(builder, self.logger)

        self._report_progress(f"Building {len(products)} products for {len(sdks)} SDKs", 30)
        group = build_orchestrator.build_all(products, sdks, clean=options.clean)
        self._report_progress("All platform builds succeeded", 75)

        # Phase 4: Merge (75-90%)
        merger = ArtifactMerger(options.resolved_output_dir, builder, self.logger)
        bundles = [merger.merge(product, results) for product, results in group.items()]
        self._report_progress(f"Merged {len(bundles)} XCFrameworks", 90)

        result = OrchestrationResult(products=products, sdks=sdks, bundles=bundles, warnings=warnings)

        # Phase 5: Packaging (90-100%)
        if options.zip:
            packaging = PackagingAdapter(graph, self.executor, self.logger)
            result.packaged = [packaging.package(bundle, options.zip_version) for bundle in bundles]

            if options.github_action:
                result.pointer_file = packaging.write_pointer_file(
                    result.packaged, options.pointer_file_path
                )

        self._report_progress("XCFrameworks complete", 100)
        return result
