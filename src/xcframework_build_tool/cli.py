"""Command-line interface for XCFramework Build Tool.

This module provides the CLI commands for the XCFramework Build Tool package.
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Tuple

import click
from click.core import ParameterSource
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from xcframework_build_tool import __version__
from xcframework_build_tool.core import (
    BuildConfiguration,
    BuildOptions,
    Environment,
    FrameworkOrchestrator,
    OrchestrationResult,
    PackageValidationError,
    TargetPlatform,
    XCFrameworkError,
    BuildError,
    MergeError,
    PackagingError,
    ProjectError,
)
from xcframework_build_tool.core.xcodeproj import SUPPORTED_TOOLCHAINS

# Initialize console for rich output
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ERROR_LABELS = (
    (PackageValidationError, "Error"),
    (ProjectError, "Project Error"),
    (BuildError, "Build Error"),
    (MergeError, "Merge Error"),
    (PackagingError, "Packaging Error"),
    (XCFrameworkError, "Error"),
)

# command line parameter -> BuildOptions field
OPTION_FIELDS = {
    'package_path': 'package_path',
    'build_path': 'build_path',
    'output': 'output_dir',
    'configuration': 'configuration',
    'platforms': 'platforms',
    'no_sim': 'exclude_simulators',
    'clean': 'clean',
    'stack_evolution': 'stack_evolution',
    'no_distribution': 'apply_distribution_settings',
    'xcconfig': 'xcconfig',
    'xc_settings': 'xc_settings',
    'fix_header_search_paths': 'fix_header_search_paths',
    'fix_header_symlinks': 'fix_header_symlinks',
    'zip_archives': 'zip',
    'zip_version': 'zip_version',
    'github_action': 'github_action',
}


def create_orchestrator() -> FrameworkOrchestrator:
    """Orchestrator used by the commands"""
    return FrameworkOrchestrator(logger=logging.getLogger('xcframework_build_tool'))


def _error_label(error: Exception) -> str:
    for error_type, label in ERROR_LABELS:
        if isinstance(error, error_type):
            return label
    return "Error"


def _print_error(error: Exception) -> None:
    if isinstance(error, PackageValidationError):
        for issue in error.issues:
            console.print(f"[bold red]✗ Error:[/bold red] {issue.message}")
    else:
        console.print(f"[bold red]✗ {_error_label(error)}:[/bold red] {error}")


def build_options_from_cli(ctx: click.Context, config: Optional[Path], products: Tuple[str, ...]) -> BuildOptions:
    """Merge the config file (if any) with explicitly given command line values"""
    options = BuildOptions.from_yaml(config) if config else BuildOptions()

    overrides = {}
    for param, field_name in OPTION_FIELDS.items():
        if ctx.get_parameter_source(param) != ParameterSource.COMMANDLINE:
            continue
        value = ctx.params[param]
        if param == 'no_distribution':
            value = not value
        elif isinstance(value, tuple):
            value = list(value)
        overrides[field_name] = value

    if products:
        overrides['products'] = list(products)

    return options.with_overrides(**overrides) if overrides else options


def _print_result(result: OrchestrationResult) -> None:
    table = Table(title="XCFrameworks")
    table.add_column("Product", style="cyan", no_wrap=True)
    table.add_column("Slices", style="magenta")
    table.add_column("Output")

    packaged = {artifact.product: artifact for artifact in result.packaged}
    for bundle in result.bundles:
        artifact = packaged.get(bundle.product)
        output = str(artifact.archive_path) if artifact else str(bundle.path)
        table.add_row(bundle.product, ', '.join(bundle.slices), output)

    console.print(table)

    for artifact in result.packaged:
        console.print(f"  {artifact.archive_path.name}: [dim]{artifact.checksum}[/dim]")

    if result.pointer_file:
        console.print(f"  Archive list written to: {result.pointer_file}")


@click.group()
@click.version_option(version=__version__)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose logging')
def main(verbose: bool) -> None:
    """XCFramework Build Tool - XCFrameworks from Swift packages.

    Builds the library products of a Swift package for every supported
    Apple platform and merges them into one XCFramework per product.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")


@main.command()
@click.argument('products', nargs=-1)
@click.option('--package-path', type=click.Path(file_okay=False, path_type=Path), default=Path('.'),
              help='Directory containing Package.swift')
@click.option('--build-path', type=click.Path(path_type=Path), default=Path('.build'),
              help='Build directory, relative to the package')
@click.option('--output', type=click.Path(file_okay=False, path_type=Path), default=Path('.'),
              help='Directory the XCFrameworks are written to')
@click.option('--configuration', type=click.Choice([c.value for c in BuildConfiguration]),
              default=BuildConfiguration.RELEASE.value, help='Build configuration')
@click.option('--platform', 'platforms', multiple=True,
              type=click.Choice([p.value for p in TargetPlatform], case_sensitive=False),
              help='Platform to build for (repeatable, default: all supported)')
@click.option('--no-sim', is_flag=True, help='Do not build simulator slices')
@click.option('--clean', is_flag=True, help='Clean build output before building')
@click.option('--stack-evolution', is_flag=True,
              help='Enable library evolution for all targets, dependencies included')
@click.option('--no-distribution', is_flag=True,
              help='Do not apply distribution settings to the built products')
@click.option('--xcconfig', type=click.Path(dir_okay=False, path_type=Path),
              help='Extra xcconfig included by the distribution settings')
@click.option('--xc-setting', 'xc_settings', multiple=True, metavar='NAME=VALUE',
              help='Extra xcodebuild build setting (repeatable)')
@click.option('--fix-header-search-paths', is_flag=True,
              help='Add header search paths the generated project leaves out')
@click.option('--fix-header-symlinks', is_flag=True,
              help='Flatten symlinked public headers (SDWebImage layout)')
@click.option('--zip', 'zip_archives', is_flag=True, help='Zip the XCFrameworks and write checksums')
@click.option('--zip-version', help='Version appended to zip archive names')
@click.option('--github-action', is_flag=True, help='Write the archive paths to xcframework-zipfile.url')
@click.option('--config', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML file with build options')
@click.pass_context
def build(ctx: click.Context, products: Tuple[str, ...], config: Optional[Path], **_) -> None:
    """Build XCFrameworks for a Swift package.

    \b
    PRODUCTS: Library products to build (default: all)

    Examples:
        xcbt build
        xcbt build MyLibrary --platform ios --platform macos --zip
        xcframework-build-tool build --config xcframework.yaml --clean
    """
    try:
        options = build_options_from_cli(ctx, config, products)

        console.print(f"[bold blue]Building XCFrameworks:[/bold blue] {options.resolved_package_path}")

        orchestrator = create_orchestrator()
        with console.status("Starting") as status:
            orchestrator.set_progress_callback(
                lambda message, percentage: status.update(f"[{percentage}%] {message}")
            )
            result = orchestrator.run(options)

        for warning in result.warnings:
            console.print(f"[bold yellow]Warning:[/bold yellow] {warning}")

        console.print(f"[bold green]✓[/bold green] Built {len(result.bundles)} XCFramework(s) "
                      f"for {len(result.sdks)} SDK(s)")
        _print_result(result)

        sys.exit(0)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except XCFrameworkError as e:
        _print_error(e)
        logger.debug("Build failed", exc_info=True)
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[bold red]✗ Configuration Error:[/bold red] {e}")
        sys.exit(1)


@main.command('list-products')
@click.option('--package-path', type=click.Path(file_okay=False, path_type=Path), default=Path('.'),
              help='Directory containing Package.swift')
def list_products(package_path: Path) -> None:
    """List the products of a Swift package.

    Examples:
        xcbt list-products --package-path ../MyPackage
    """
    try:
        orchestrator = create_orchestrator()
        products = orchestrator.list_products(BuildOptions(package_path=package_path))

        table = Table(title="Products")
        table.add_column("Product", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Targets")
        table.add_column("Buildable")

        for product in products:
            table.add_row(
                product['name'],
                product['type'],
                ', '.join(product['targets']),
                "[green]yes[/green]" if product['eligible'] else "[dim]no[/dim]"
            )

        console.print(table)
        sys.exit(0)

    except XCFrameworkError as e:
        _print_error(e)
        sys.exit(1)


@main.command()
def info() -> None:
    """Display information about XCFramework Build Tool."""
    platforms = ', '.join(p.display_name for p in TargetPlatform)
    xcode = Environment().xcode_version() or 'not found'
    panel = Panel.fit(
        f"""[bold cyan]XCFramework Build Tool[/bold cyan] v{__version__}

[bold]Platforms:[/bold]
  {platforms}

[bold]Toolchain:[/bold]
  {xcode}
  Supported: {SUPPORTED_TOOLCHAINS}

[bold]Commands:[/bold]
  • build           Build XCFrameworks for a package
  • list-products   List the package's products
  • info            Show this information

[bold]Usage:[/bold]
  xcframework-build-tool --help
  xcbt <command> --help""",
        title="[bold]XCFramework Build Tool[/bold]",
        border_style="blue"
    )
    console.print(panel)
    sys.exit(0)


if __name__ == '__main__':
    main()
