"""
XCFramework Build Tool Core
Package graph, platform table, project configuration, platform builds, merging and packaging
"""

from .exceptions import (
    XCFrameworkError,
    PackageValidationError,
    InvalidProductsError,
    NoEligibleProductsError,
    UnsupportedPlatformsError,
    CommandError,
    ProjectError,
    BuildError,
    MergeError,
    PackagingError
)
from .models import (
    ProductType,
    BuildConfiguration,
    Product,
    GraphTarget,
    ValidationIssue,
    BuildResult,
    BuildFailure,
    PlatformBuild,
    MergedBundle,
    PackagedArtifact,
    HeaderSymlinkFix,
    BuildOptions
)
from .platform import SDK, TargetPlatform
from .environment import Environment
from .executor import Executor, CommandResult
from .package_graph import PackageGraph, SwiftPackageGraph, PackageGraphLoader
from .catalog import ProductCatalog, PackageValidator
from .xcodeproj import XcodeProject, ProjectGenerator
from .configurator import ProjectConfigurator
from .xcodebuild import XcodeBuilder
from .build_manager import ArtifactGroup, BuildOrchestrator
from .merger import ArtifactMerger
from .packaging import PackagingAdapter
from .orchestrator import FrameworkOrchestrator, OrchestrationResult

__all__ = [
    'XCFrameworkError',
    'PackageValidationError',
    'InvalidProductsError',
    'NoEligibleProductsError',
    'UnsupportedPlatformsError',
    'CommandError',
    'ProjectError',
    'BuildError',
    'MergeError',
    'PackagingError',
    'ProductType',
    'BuildConfiguration',
    'Product',
    'GraphTarget',
    'ValidationIssue',
    'BuildResult',
    'BuildFailure',
    'PlatformBuild',
    'MergedBundle',
    'PackagedArtifact',
    'HeaderSymlinkFix',
    'BuildOptions',
    'SDK',
    'TargetPlatform',
    'Environment',
    'Executor',
    'CommandResult',
    'PackageGraph',
    'SwiftPackageGraph',
    'PackageGraphLoader',
    'ProductCatalog',
    'PackageValidator',
    'XcodeProject',
    'ProjectGenerator',
    'ProjectConfigurator',
    'XcodeBuilder',
    'ArtifactGroup',
    'BuildOrchestrator',
    'ArtifactMerger',
    'PackagingAdapter',
    'FrameworkOrchestrator',
    'OrchestrationResult'
]
