"""
Error taxonomy for XCFramework builds
"""

from typing import List, Optional, Sequence


class XCFrameworkError(Exception):
    """Base class for all errors raised by the build pipeline"""


class PackageValidationError(XCFrameworkError):
    """One or more fatal validation issues were found before building"""

    def __init__(self, issues: Sequence):
        self.issues = list(issues)
        messages = '; '.join(issue.message for issue in self.issues)
        super().__init__(f"Package validation failed: {messages}")


class InvalidProductsError(XCFrameworkError):
    """Requested products are not library products of the package"""

    def __init__(self, names: Sequence[str], reason: str = "not a library product of the package"):
        self.names = list(names)
        super().__init__(f"Invalid products ({reason}): {', '.join(self.names)}")


class NoEligibleProductsError(XCFrameworkError):
    """No product is left to build"""

    def __init__(self, message: str = "No eligible library products to build"):
        super().__init__(message)


class UnsupportedPlatformsError(XCFrameworkError):
    """Requested platforms are not supported by the package"""

    def __init__(self, platforms: Sequence[str], supported: Sequence[str]):
        self.platforms = list(platforms)
        self.supported = list(supported)
        super().__init__(
            f"Package does not support platform(s): {', '.join(self.platforms)}. "
            f"Supported: {', '.join(self.supported) or 'none'}"
        )


class CommandError(XCFrameworkError):
    """An external command failed"""

    def __init__(self, message: str, command: str = '', returncode: Optional[int] = None,
                 stdout: str = '', stderr: str = '', error_type=None):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error_type = error_type
        super().__init__(message)


class ProjectError(XCFrameworkError):
    """The generated Xcode project could not be loaded, modified or saved"""


class BuildError(XCFrameworkError):
    """A platform build failed; the whole run is aborted"""

    def __init__(self, message: str, sdk=None, failures: Optional[List] = None):
        self.sdk = sdk
        self.failures = list(failures or [])
        super().__init__(message)


class MergeError(XCFrameworkError):
    """Per-platform artifacts could not be merged into an XCFramework"""

    def __init__(self, product: str, message: str, sdk=None):
        self.product = product
        self.sdk = sdk
        where = f" ({sdk.slice_key})" if sdk is not None else ""
        super().__init__(f"{product}{where}: {message}")


class PackagingError(XCFrameworkError):
    """Compressing or checksumming a merged bundle failed"""
