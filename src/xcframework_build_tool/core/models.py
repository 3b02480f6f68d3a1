"""
Core data models with Pydantic validation
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .platform import SDK, TargetPlatform


class ProductType(str, Enum):
    """Swift package product type"""
    LIBRARY = "library"
    EXECUTABLE = "executable"
    PLUGIN = "plugin"
    MACRO = "macro"
    TEST = "test"
    OTHER = "other"


class BuildConfiguration(str, Enum):
    """Xcode build configuration"""
    DEBUG = "debug"
    RELEASE = "release"

    @property
    def xcode_name(self) -> str:
        return self.value.capitalize()


class Product(BaseModel):
    """A product declared by a package"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Product name")
    type: ProductType = Field(..., description="Product type")
    targets: List[str] = Field(default_factory=list, description="Targets making up the product")
    package: str = Field(default='', description="Name of the declaring package")

    @property
    def is_library(self) -> bool:
        return self.type == ProductType.LIBRARY


class GraphTarget(BaseModel):
    """A target of the resolved package graph"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Target name")
    kind: str = Field(default='library', description="Target type (library, binary, system-target, ...)")
    module_type: str = Field(default='SwiftTarget', description="SwiftTarget, ClangTarget, ...")
    package: str = Field(default='', description="Name of the declaring package")
    package_root: Path = Field(..., description="Root directory of the declaring package")
    source_root: Path = Field(..., description="Directory holding the target sources")
    include_dir: Optional[Path] = Field(default=None, description="Public headers directory")
    header_search_paths: List[str] = Field(
        default_factory=list, description="Declared header search paths, relative to source_root"
    )
    has_conditional_dependencies: bool = Field(default=False)

    @property
    def is_clang(self) -> bool:
        return self.module_type == 'ClangTarget'


class ValidationIssue(BaseModel):
    """A problem found while validating the package before building"""
    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Issue category")
    message: str = Field(..., min_length=1, description="Human readable description")
    fatal: bool = Field(default=False, description="Whether the issue aborts the run")


class BuildResult(BaseModel):
    """Artifacts of one product built for one SDK"""
    model_config = ConfigDict(frozen=True)

    product: str = Field(..., min_length=1)
    sdk: SDK
    framework_path: Path
    debug_symbols_path: Optional[Path] = None


class BuildFailure(BaseModel):
    """A product that did not produce a framework for an SDK"""
    model_config = ConfigDict(frozen=True)

    product: str = Field(..., min_length=1)
    sdk: SDK
    reason: str


class PlatformBuild(BaseModel):
    """Outcome of one xcodebuild invocation for one SDK"""

    sdk: SDK
    returncode: int = 0
    outcomes: Dict[str, Union[BuildResult, BuildFailure]] = Field(default_factory=dict)

    @property
    def failures(self) -> List[BuildFailure]:
        return [o for o in self.outcomes.values() if isinstance(o, BuildFailure)]

    @property
    def succeeded(self) -> List[BuildResult]:
        return [o for o in self.outcomes.values() if isinstance(o, BuildResult)]


class MergedBundle(BaseModel):
    """The XCFramework produced for one product"""
    model_config = ConfigDict(frozen=True)

    product: str = Field(..., min_length=1)
    path: Path
    platform_count: int = Field(..., ge=1, description="Number of contributing SDK slices")
    slices: List[str] = Field(default_factory=list, description="Slice keys in merge order")


class PackagedArtifact(BaseModel):
    """Zip archive and checksum of a merged bundle"""
    model_config = ConfigDict(frozen=True)

    product: str
    archive_path: Path
    checksum_path: Path
    checksum: str


class HeaderSymlinkFix(BaseModel):
    """Describes a target whose public headers only exist as nested symlinks"""

    target: str = Field(default='SDWebImage', min_length=1)
    sources_subdir: str = Field(default='Core', description="Directory under source_root to collect headers from")
    nested_include_dir: str = Field(default='SDWebImage', description="Directory under include_dir to remove")
    umbrella_header: str = Field(
        default='WebImage/SDWebImage.h', description="Umbrella header, relative to the package root"
    )


class BuildOptions(BaseModel):
    """Complete configuration of one XCFramework run"""
    model_config = ConfigDict(use_enum_values=False)

    package_path: Path = Field(default=Path('.'), description="Swift package directory")
    build_path: Path = Field(default=Path('.build'), description="Build directory, relative to the package")
    output_dir: Path = Field(default=Path('.'), description="Where merged XCFrameworks are written")
    configuration: BuildConfiguration = Field(default=BuildConfiguration.RELEASE)
    products: List[str] = Field(default_factory=list, description="Products to build (empty = all libraries)")
    platforms: List[TargetPlatform] = Field(default_factory=list, description="Platforms (empty = all supported)")
    clean: bool = Field(default=False, description="Clean build output before building")
    exclude_simulators: bool = Field(default=False, description="Skip simulator destinations")
    apply_distribution_settings: bool = Field(
        default=True, description="Apply the distribution xcconfig to the products being built"
    )
    stack_evolution: bool = Field(
        default=False, description="Enable library evolution for every target, dependencies included"
    )
    xcconfig: Optional[Path] = Field(default=None, description="Extra xcconfig included by the distribution config")
    xc_settings: Dict[str, str] = Field(default_factory=dict, description="Extra xcodebuild build settings")
    fix_header_search_paths: bool = Field(default=False)
    fix_header_symlinks: bool = Field(default=False)
    header_symlink_fix: HeaderSymlinkFix = Field(default_factory=HeaderSymlinkFix)
    zip: bool = Field(default=False, description="Zip merged XCFrameworks and write checksums")
    zip_version: Optional[str] = Field(default=None, description="Version suffix of zip archive names")
    github_action: bool = Field(default=False, description="Write a file listing the produced zip paths")

    @field_validator('platforms', mode='before')
    @classmethod
    def parse_platforms(cls, v):
        """Accept platform names in any case"""
        if v is None:
            return []
        return [TargetPlatform.parse(p) if isinstance(p, str) else p for p in v]

    @field_validator('xc_settings', mode='before')
    @classmethod
    def parse_xc_settings(cls, v):
        """Accept NAME=VALUE strings as well as a mapping"""
        if v is None:
            return {}
        if isinstance(v, (list, tuple)):
            settings = {}
            for item in v:
                if '=' not in item:
                    raise ValueError(f"Build setting must look like NAME=VALUE, got '{item}'")
                name, value = item.split('=', 1)
                if not name.strip():
                    raise ValueError(f"Build setting name is empty in '{item}'")
                settings[name.strip()] = value.strip()
            return settings
        return v

    # Derived paths

    @property
    def resolved_package_path(self) -> Path:
        return Path(self.package_path).resolve()

    @property
    def resolved_build_path(self) -> Path:
        path = Path(self.build_path)
        if not path.is_absolute():
            path = self.resolved_package_path / path
        return path

    @property
    def resolved_output_dir(self) -> Path:
        return Path(self.output_dir).resolve()

    @property
    def resolved_xcconfig(self) -> Optional[Path]:
        if self.xcconfig is None:
            return None
        path = Path(self.xcconfig)
        if not path.is_absolute():
            path = self.resolved_package_path / path
        return path

    @property
    def project_dir(self) -> Path:
        return self.resolved_build_path / 'xcframework-build-tool'

    @property
    def distribution_xcconfig_path(self) -> Path:
        return self.project_dir / 'Distribution.xcconfig'

    @property
    def products_build_dir(self) -> Path:
        return self.project_dir / 'build'

    @property
    def pointer_file_path(self) -> Path:
        return self.resolved_build_path / 'xcframework-zipfile.url'

    def with_overrides(self, **overrides) -> 'BuildOptions':
        """Return a copy with the given fields replaced and re-validated"""
        data = self.model_dump()
        data.update(overrides)
        return BuildOptions(**data)

    def to_yaml(self, path: Path) -> None:
        """Save options to YAML file"""
        data = self.model_dump(mode='json')

        try:
            with open(path, 'w') as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except PermissionError:
            raise PermissionError(f"Permission denied writing to file: {path}")

    @classmethod
    def from_yaml(cls, path: Path) -> 'BuildOptions':
        """Load options from YAML file

        Raises:
            FileNotFoundError: If file does not exist
            ValueError: If the YAML is invalid or is not a mapping
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Options file not found: {path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in file {path}: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Options file {path} must contain a mapping")

        return cls(**data)
