"""
xcodebuild command construction and execution
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .executor import CommandResult, Executor
from .fs_utils import remove_path
from .models import BuildFailure, BuildOptions, BuildResult, PlatformBuild
from .platform import SDK


class XcodeBuilder:
    """
    Drives xcodebuild for the generated project

    Every SDK writes into its own ``<Configuration><suffix>`` folder under the
    shared build directory.
    """

    def __init__(
        self,
        project_path: Path,
        options: BuildOptions,
        executor: Executor,
        logger: Optional[logging.Logger] = None
    ):
        self.project_path = Path(project_path)
        self.options = options
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    @property
    def build_dir(self) -> Path:
        return self.options.products_build_dir

    @property
    def configuration_name(self) -> str:
        return self.options.configuration.xcode_name

    # Paths

    def products_dir(self, sdk: SDK) -> Path:
        return self.build_dir / sdk.products_folder(self.configuration_name)

    def framework_path(self, product: str, sdk: SDK) -> Path:
        return self.products_dir(sdk) / f"{product}.framework"

    def debug_symbols_path(self, product: str, sdk: SDK) -> Path:
        return self.products_dir(sdk) / f"{product}.framework.dSYM"

    # Commands

    def clean_command(self) -> List[str]:
        return [
            'xcrun', 'xcodebuild',
            '-project', str(self.project_path),
            'BUILD_DIR=' + str(self.build_dir),
            'clean'
        ]

    def command_line_xcconfig(self) -> Optional[Path]:
        """
        xcconfig applied to every target of a build, if any

        With stack evolution the distribution settings (and the user xcconfig
        they include) cover dependencies too. Without distribution settings the
        user xcconfig is still honoured on its own.
        """
        if self.options.stack_evolution:
            return self.options.distribution_xcconfig_path
        if not self.options.apply_distribution_settings:
            return self.options.resolved_xcconfig
        return None

    def build_command(self, products: Sequence[str], sdk: SDK) -> List[str]:
        """xcodebuild invocation building every product for one SDK"""
        cmd = [
            'xcrun', 'xcodebuild',
            '-project', str(self.project_path),
            '-configuration', self.configuration_name,
            '-sdk', sdk.sdk_name,
        ]

        xcconfig = self.command_line_xcconfig()
        if xcconfig is not None:
            cmd.extend(['-xcconfig', str(xcconfig)])

        cmd.extend(['BUILD_DIR=' + str(self.build_dir), 'SKIP_INSTALL=NO'])

        if self.options.stack_evolution:
            cmd.append('BUILD_LIBRARY_FOR_DISTRIBUTION=YES')

        for name, value in sdk.build_settings:
            cmd.append(f"{name}={value}")

        for name, value in self.options.xc_settings.items():
            cmd.append(f"{name}={value}")

        for product in products:
            cmd.extend(['-target', product])

        cmd.append('build')
        return cmd

    def create_xcframework_command(self, results: Sequence[BuildResult], output: Path) -> List[str]:
        """xcodebuild -create-xcframework invocation, one slice per result in order"""
        cmd = ['xcrun', 'xcodebuild', '-create-xcframework']
        for result in results:
            cmd.extend(['-framework', str(result.framework_path)])
            if result.debug_symbols_path is not None:
                cmd.extend(['-debug-symbols', str(result.debug_symbols_path)])
        cmd.extend(['-output', str(output)])
        return cmd

    # Execution

    def clean(self) -> CommandResult:
        """Run xcodebuild clean and remove the build directory

        Raises:
            OSError: If the build directory cannot be removed
        """
        result = self.executor.stream(self.clean_command(), cwd=self.project_path.parent)
        if not result.success:
            self.logger.warning(f"xcodebuild clean exited with code {result.returncode}")
        remove_path(self.build_dir)
        return result

    def build(self, products: Sequence[str], sdk: SDK) -> PlatformBuild:
        """
        Build every product for one SDK

        Each product independently yields a BuildResult when its framework
        was produced, or a BuildFailure otherwise.
        """
        # a previous run's frameworks must not pass for fresh output
        remove_path(self.products_dir(sdk))

        result = self.executor.stream(self.build_command(products, sdk), cwd=self.project_path.parent)

        outcomes = {}
        for product in products:
            framework = self.framework_path(product, sdk)
            if framework.is_dir():
                dsym = self.debug_symbols_path(product, sdk)
                outcomes[product] = BuildResult(
                    product=product,
                    sdk=sdk,
                    framework_path=framework,
                    debug_symbols_path=dsym if dsym.exists() else None
                )
            else:
                reason = f"{framework.name} was not produced"
                if not result.success:
                    reason += f" (xcodebuild exit code {result.returncode})"
                outcomes[product] = BuildFailure(product=product, sdk=sdk, reason=reason)

        return PlatformBuild(sdk=sdk, returncode=result.returncode, outcomes=outcomes)
