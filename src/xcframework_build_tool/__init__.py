"""XCFramework Build Tool - build multi-platform XCFrameworks from Swift packages.

This package generates an Xcode project for a Swift package, builds its
library products once per Apple SDK with xcodebuild, and merges the
per-SDK frameworks into one XCFramework per product.
"""

from xcframework_build_tool.core import (
    BuildOptions,
    FrameworkOrchestrator,
    OrchestrationResult,
    SDK,
    TargetPlatform,
    XCFrameworkError,
)

__version__ = "1.0.0"
__author__ = "XCFramework Build Tool Contributors"

# Public API exports
__all__ = [
    # Metadata
    "__version__",
    "__author__",
    # Configuration
    "BuildOptions",
    "TargetPlatform",
    "SDK",
    # Pipeline
    "FrameworkOrchestrator",
    "OrchestrationResult",
    "XCFrameworkError",
]
