"""
Apple target platforms and the SDK destinations built for each of them
"""

from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SDK(BaseModel):
    """One build destination of a platform (device or simulator variant)"""
    model_config = ConfigDict(frozen=True)

    platform: str = Field(..., min_length=1, description="Owning TargetPlatform value")
    destination: str = Field(..., min_length=1, description="Destination identity of this build variant")
    sdk_name: str = Field(..., min_length=1, description="xcodebuild -sdk value")
    build_folder_suffix: str = Field(default='', description="Suffix of the <Configuration> products folder")
    slice_key: str = Field(..., min_length=1, description="Variant identity inside the merged bundle")
    build_settings: Tuple[Tuple[str, str], ...] = Field(default=(), description="Extra build settings")

    @property
    def is_simulator(self) -> bool:
        return 'simulator' in self.destination.lower()

    def products_folder(self, configuration_name: str) -> str:
        """Name of the folder xcodebuild writes this SDK's products to"""
        return f"{configuration_name}{self.build_folder_suffix}"

    def __str__(self) -> str:
        return self.destination


class TargetPlatform(str, Enum):
    """Platforms an XCFramework can be built for"""
    IOS = "ios"
    MACOS = "macos"
    MACCATALYST = "maccatalyst"
    TVOS = "tvos"
    WATCHOS = "watchos"

    @property
    def package_platform_name(self) -> str:
        """Platform name the package manifest must declare to support this platform"""
        return PLATFORM_TABLE[self]['package_platform']

    @property
    def display_name(self) -> str:
        return PLATFORM_TABLE[self]['display_name']

    @property
    def sdks(self) -> List[SDK]:
        return list(PLATFORM_TABLE[self]['sdks'])

    @classmethod
    def parse(cls, value: str) -> 'TargetPlatform':
        """Parse a platform name, ignoring case"""
        try:
            return cls(value.strip().lower())
        except ValueError:
            available = [p.value for p in cls]
            raise ValueError(
                f"Invalid platform: '{value}'. Must be one of: {', '.join(available)}"
            )


PLATFORM_TABLE: Dict[TargetPlatform, Dict] = {
    TargetPlatform.IOS: {
        'display_name': 'iOS',
        'package_platform': 'ios',
        'sdks': (
            SDK(platform='ios', destination='generic/platform=iOS', sdk_name='iphoneos',
                build_folder_suffix='-iphoneos', slice_key='ios'),
            SDK(platform='ios', destination='generic/platform=iOS Simulator', sdk_name='iphonesimulator',
                build_folder_suffix='-iphonesimulator', slice_key='ios-simulator'),
        ),
    },
    TargetPlatform.MACOS: {
        'display_name': 'macOS',
        'package_platform': 'macos',
        'sdks': (
            SDK(platform='macos', destination='generic/platform=macOS,name=Any Mac', sdk_name='macosx',
                build_folder_suffix='', slice_key='macos'),
        ),
    },
    TargetPlatform.MACCATALYST: {
        'display_name': 'Mac Catalyst',
        'package_platform': 'ios',
        'sdks': (
            SDK(platform='maccatalyst', destination='generic/platform=macOS,variant=Mac Catalyst',
                sdk_name='macosx', build_folder_suffix='-maccatalyst', slice_key='ios-maccatalyst',
                build_settings=(('SUPPORTS_MACCATALYST', 'YES'), ('SDK_VARIANT', 'iosmac'))),
        ),
    },
    TargetPlatform.TVOS: {
        'display_name': 'tvOS',
        'package_platform': 'tvos',
        'sdks': (
            SDK(platform='tvos', destination='generic/platform=tvOS', sdk_name='appletvos',
                build_folder_suffix='-appletvos', slice_key='tvos'),
            SDK(platform='tvos', destination='generic/platform=tvOS Simulator', sdk_name='appletvsimulator',
                build_folder_suffix='-appletvsimulator', slice_key='tvos-simulator'),
        ),
    },
    TargetPlatform.WATCHOS: {
        'display_name': 'watchOS',
        'package_platform': 'watchos',
        'sdks': (
            SDK(platform='watchos', destination='generic/platform=watchOS', sdk_name='watchos',
                build_folder_suffix='-watchos', slice_key='watchos'),
            SDK(platform='watchos', destination='generic/platform=watchOS Simulator', sdk_name='watchsimulator',
                build_folder_suffix='-watchsimulator', slice_key='watchos-simulator'),
        ),
    },
}
