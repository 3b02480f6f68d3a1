"""
Zip archives, checksums and the pointer file for automation
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .executor import Executor
from .exceptions import CommandError, PackagingError
from .fs_utils import remove_path
from .models import MergedBundle, PackagedArtifact
from .package_graph import PackageGraph


class PackagingAdapter:
    """Compresses merged bundles and records their checksums"""

    CHUNK_SIZE = 1024 * 1024

    def __init__(self, graph: PackageGraph, executor: Executor, logger: Optional[logging.Logger] = None):
        self.graph = graph
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    def version_suffix(self, product: str, version: Optional[str] = None) -> str:
        """'-<version>' from the explicit version or the owning dependency's resolved version"""
        version = version or self.graph.version_of_product(product)
        return f"-{version}" if version else ''

    def zip(self, bundle: MergedBundle, version: Optional[str] = None) -> Path:
        """Archive the bundle next to it with ditto, keeping the bundle directory"""
        bundle_path = Path(bundle.path)
        archive = bundle_path.parent / f"{bundle.product}{self.version_suffix(bundle.product, version)}.zip"

        try:
            remove_path(archive)
            self.executor.run(
                ['ditto', '-c', '-k', '--keepParent', bundle_path, archive],
                cwd=bundle_path.parent
            )
        except (CommandError, OSError) as e:
            raise PackagingError(f"Failed to zip {bundle_path.name}: {e}") from e

        self.logger.info(f"Created {archive.name}")
        return archive

    def checksum(self, archive: Path) -> Tuple[Path, str]:
        """Write the SHA-256 of archive to a .sha256 file beside it"""
        archive = Path(archive)
        checksum_path = archive.with_suffix('.sha256')
        digest = hashlib.sha256()

        try:
            with open(archive, 'rb') as f:
                for chunk in iter(lambda: f.read(self.CHUNK_SIZE), b''):
                    digest.update(chunk)
            checksum = digest.hexdigest()
            checksum_path.write_text(checksum)
        except OSError as e:
            raise PackagingError(f"Failed to checksum {archive.name}: {e}") from e

        self.logger.debug(f"{archive.name}: {checksum}")
        return checksum_path, checksum

    def clean(self, bundle: MergedBundle) -> None:
        """Remove the bundle once it has been archived"""
        try:
            remove_path(Path(bundle.path))
        except OSError as e:
            raise PackagingError(f"Failed to remove {bundle.path}: {e}") from e

    def package(self, bundle: MergedBundle, version: Optional[str] = None) -> PackagedArtifact:
        archive = self.zip(bundle, version)
        checksum_path, checksum = self.checksum(archive)
        self.clean(bundle)
        return PackagedArtifact(
            product=bundle.product,
            archive_path=archive,
            checksum_path=checksum_path,
            checksum=checksum
        )

    def write_pointer_file(self, artifacts: Sequence[PackagedArtifact], path: Path) -> Path:
        """List archive and checksum paths, one per line"""
        path = Path(path)
        lines = []
        for artifact in artifacts:
            lines.extend([str(artifact.archive_path), str(artifact.checksum_path)])

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text('\n'.join(lines))
        except OSError as e:
            raise PackagingError(f"Failed to write {path}: {e}") from e

        self.logger.info(f"Wrote {path}")
        return path
