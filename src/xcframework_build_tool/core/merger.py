"""
Merges per-SDK frameworks of one product into an XCFramework
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Sequence

from .exceptions import CommandError, MergeError
from .fs_utils import remove_path
from .models import BuildResult, MergedBundle
from .xcodebuild import XcodeBuilder


COLLISION_MARKER = 'equivalent library definitions'


class ArtifactMerger:
    """Runs ``xcodebuild -create-xcframework`` for one product at a time"""

    def __init__(self, output_dir: Path, builder: XcodeBuilder, logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.builder = builder
        self.logger = logger or logging.getLogger(__name__)

    def output_path(self, product: str) -> Path:
        return self.output_dir / f"{product}.xcframework"

    def merge(self, product: str, results: Sequence[BuildResult]) -> MergedBundle:
        """
        Merge a product's build results, in order, into one bundle

        The bundle is assembled in a temporary staging directory and only
        replaces the previous output once xcodebuild succeeded.

        Raises:
            MergeError: On empty or inconsistent input, a missing slice,
                two results for the same slice, or a failed merge
        """
        results = list(results)
        self._check_results(product, results)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        destination = self.output_path(product)

        with tempfile.TemporaryDirectory(prefix=f".{product}-", dir=self.output_dir) as staging:
            staged = Path(staging) / destination.name
            cmd = self.builder.create_xcframework_command(results, staged)

            self.logger.info(f"Merging {product} ({len(results)} slices)")
            try:
                result = self.builder.executor.run(cmd, check=False)
            except CommandError as e:
                raise MergeError(product, f"xcodebuild could not run: {e}") from e

            if not result.success:
                output = f"{result.stderr}\n{result.stdout}"
                if COLLISION_MARKER in output.lower():
                    raise MergeError(product, f"platform variant collision: {_last_line(output)}")
                raise MergeError(
                    product,
                    f"xcodebuild -create-xcframework failed (exit code {result.returncode}): {_last_line(output)}"
                )

            if not staged.exists():
                raise MergeError(product, f"xcodebuild did not produce {destination.name}")

            try:
                remove_path(destination)
                shutil.move(str(staged), str(destination))
            except OSError as e:
                raise MergeError(product, f"Failed to move bundle into {destination}: {e}") from e

        self.logger.info(f"✓ {destination}")
        return MergedBundle(
            product=product,
            path=destination,
            platform_count=len(results),
            slices=[r.sdk.slice_key for r in results]
        )

    @staticmethod
    def _check_results(product: str, results: Sequence[BuildResult]) -> None:
        if not results:
            raise MergeError(product, "no build results to merge")

        seen: Dict[str, BuildResult] = {}
        for result in results:
            if result.product != product:
                raise MergeError(
                    product, f"build result belongs to '{result.product}'", sdk=result.sdk
                )

            previous = seen.get(result.sdk.slice_key)
            if previous is not None:
                raise MergeError(
                    product,
                    f"{previous.sdk.destination} and {result.sdk.destination} "
                    f"both produce slice '{result.sdk.slice_key}'",
                    sdk=result.sdk
                )
            seen[result.sdk.slice_key] = result

            if not Path(result.framework_path).is_dir():
                raise MergeError(
                    product, f"framework slice missing: {result.framework_path}", sdk=result.sdk
                )


def _last_line(output: str) -> str:
    lines = [line for line in output.strip().splitlines() if line.strip()]
    return lines[-1].strip() if lines else 'no output'
