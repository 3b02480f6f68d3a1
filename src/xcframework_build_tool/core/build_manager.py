"""
Per-SDK build loop and grouping of artifacts by product
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .exceptions import BuildError, CommandError
from .models import BuildResult
from .platform import SDK
from .xcodebuild import XcodeBuilder


class ArtifactGroup:
    """
    Ordered mapping of product name to its BuildResults

    Results keep the order they were added in, which is the SDK build order.
    """

    def __init__(self):
        self._results: Dict[str, List[BuildResult]] = {}

    def add(self, product: str, result: BuildResult) -> None:
        if result.product != product:
            raise ValueError(
                f"Build result for '{result.product}' cannot be grouped under '{product}'"
            )
        self._results.setdefault(product, []).append(result)

    def products(self) -> List[str]:
        return list(self._results)

    def items(self) -> List[Tuple[str, List[BuildResult]]]:
        return [(product, list(results)) for product, results in self._results.items()]

    def __getitem__(self, product: str) -> List[BuildResult]:
        return list(self._results[product])

    def __contains__(self, product: object) -> bool:
        return product in self._results

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)


class BuildOrchestrator:
    """
    Builds all products once per SDK, sequentially

    Any failure aborts the run before anything is merged.
    """

    def __init__(self, builder: XcodeBuilder, logger: Optional[logging.Logger] = None):
        self.builder = builder
        self.logger = logger or logging.getLogger(__name__)

    def clean(self) -> None:
        """
        Remove previous build output

        Raises:
            BuildError: If the build directory cannot be removed
        """
        self.logger.info("Cleaning previous build output")
        try:
            self.builder.clean()
        except OSError as e:
            raise BuildError(f"Failed to clean build directory {self.builder.build_dir}: {e}") from e

    def build_all(self, products: Sequence[str], sdks: Sequence[SDK], clean: bool = False) -> ArtifactGroup:
        """
        Build every product for every SDK and group the results

        Args:
            products: Eligible product names
            sdks: SDKs in declaration order
            clean: Clean before the first build

        Returns:
            ArtifactGroup whose per-product order matches the SDK order

        Raises:
            BuildError: On the first SDK whose build exits non-zero or misses a product
        """
        if clean:
            self.clean()

        group = ArtifactGroup()

        for index, sdk in enumerate(sdks, start=1):
            self.logger.info(f"Building {', '.join(products)} for {sdk.destination} ({index}/{len(sdks)})")

            try:
                platform_build = self.builder.build(products, sdk)
            except (OSError, CommandError) as e:
                raise BuildError(f"Build for {sdk.destination} could not run: {e}", sdk=sdk) from e

            failures = platform_build.failures
            if platform_build.returncode != 0 or failures:
                for failure in failures:
                    self.logger.error(f"✗ {failure.product} [{sdk.slice_key}]: {failure.reason}")
                failed = ', '.join(f.product for f in failures) or 'no products missing'
                raise BuildError(
                    f"Build failed for {sdk.destination} "
                    f"(exit code {platform_build.returncode}; failed: {failed})",
                    sdk=sdk,
                    failures=failures
                )

            for result in platform_build.succeeded:
                group.add(result.product, result)

            self.logger.info(f"✓ {sdk.destination} built")

        return group
