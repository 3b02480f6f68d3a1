"""Unit tests for project configuration and header fixes."""

import copy
import os
from pathlib import Path

import pytest

from xcframework_build_tool.core.configurator import ProjectConfigurator
from xcframework_build_tool.core.models import GraphTarget, HeaderSymlinkFix, Product, ProductType
from xcframework_build_tool.core.package_graph import SwiftPackageGraph
from xcframework_build_tool.core.xcodeproj import XcodeProject


@pytest.fixture
def project(temp_workspace, project_data) -> XcodeProject:
    return XcodeProject(temp_workspace / 'Kit.xcodeproj', project_data)


class TestEnableDistribution:
    """Test selective application of the distribution xcconfig."""

    @pytest.mark.unit
    def test_only_requested_targets_touched(self, project, temp_workspace):
        """Test targets outside the allow-list keep their configuration."""
        untouched = copy.deepcopy(project.build_configurations('DepCore'))
        xcconfig = temp_workspace / 'Distribution.xcconfig'

        touched = ProjectConfigurator().enable_distribution(project, ['KitUI', 'Kit'], xcconfig)

        assert touched == ['Kit', 'KitUI']
        ref_id = project.add_file_reference(xcconfig)
        for name in ('Kit', 'KitUI'):
            for configuration in project.build_configurations(name):
                assert configuration['baseConfigurationReference'] == ref_id
        assert project.build_configurations('DepCore') == untouched

    @pytest.mark.unit
    def test_unknown_targets_ignored(self, project, temp_workspace):
        """Test names missing from the project are skipped."""
        touched = ProjectConfigurator().enable_distribution(
            project, ['Kit', 'NotInProject'], temp_workspace / 'Distribution.xcconfig'
        )

        assert touched == ['Kit']

    @pytest.mark.unit
    def test_no_matching_targets(self, project, temp_workspace):
        """Test nothing is added when no target matches."""
        objects_before = set(project.objects)

        touched = ProjectConfigurator().enable_distribution(
            project, ['Other'], temp_workspace / 'Distribution.xcconfig'
        )

        assert touched == []
        assert set(project.objects) == objects_before


class TestHeaderSearchPaths:
    """Test injection of declared header search paths."""

    @pytest.mark.unit
    def test_paths_added_after_inherited(self, project, package_graph, package_dir):
        """Test declared paths are resolved and appended after $(inherited)."""
        changed = ProjectConfigurator().fix_header_search_paths(project, package_graph)

        expected = ['$(inherited)', str(package_dir / 'Sources' / 'KitUI' / 'private')]
        assert changed == ['KitUI']
        for configuration in project.build_configurations('KitUI'):
            assert configuration['buildSettings']['HEADER_SEARCH_PATHS'] == expected
        assert 'HEADER_SEARCH_PATHS' not in project.build_configurations('Kit')[0]['buildSettings']

    @pytest.mark.unit
    def test_existing_values_kept(self, project, package_graph, package_dir):
        """Test existing entries stay and $(inherited) moves first."""
        settings = project.build_configurations('KitUI')[0]['buildSettings']
        settings['HEADER_SEARCH_PATHS'] = ['/usr/local/include', '$(inherited)']

        ProjectConfigurator().fix_header_search_paths(project, package_graph)

        assert settings['HEADER_SEARCH_PATHS'] == [
            '$(inherited)', '/usr/local/include', str(package_dir / 'Sources' / 'KitUI' / 'private')
        ]

    @pytest.mark.unit
    def test_string_value(self, project, package_graph):
        """Test a single string setting is turned into a list."""
        settings = project.build_configurations('KitUI')[0]['buildSettings']
        settings['HEADER_SEARCH_PATHS'] = '/opt/include'

        ProjectConfigurator().fix_header_search_paths(project, package_graph)

        assert settings['HEADER_SEARCH_PATHS'][:2] == ['$(inherited)', '/opt/include']

    @pytest.mark.unit
    def test_space_separated_string_value(self, project, package_graph, package_dir):
        """Test a space separated string is split into entries, honouring quotes."""
        settings = project.build_configurations('KitUI')[0]['buildSettings']
        settings['HEADER_SEARCH_PATHS'] = '$(inherited) /opt/include "/opt/my headers"'

        ProjectConfigurator().fix_header_search_paths(project, package_graph)

        assert settings['HEADER_SEARCH_PATHS'] == [
            '$(inherited)', '/opt/include', '"/opt/my headers"',
            str(package_dir / 'Sources' / 'KitUI' / 'private'),
        ]

    @pytest.mark.unit
    def test_paths_with_spaces_quoted(self, project, temp_workspace):
        """Test an injected path containing a space is quoted, and stays stable on rerun."""
        root = temp_workspace / 'My Package'
        target = GraphTarget(name='KitUI', module_type='ClangTarget', package='Kit',
                             package_root=root, source_root=root / 'Sources' / 'KitUI',
                             header_search_paths=['private'])
        graph = SwiftPackageGraph('Kit', root, [], [target])
        configurator = ProjectConfigurator()

        configurator.fix_header_search_paths(project, graph)
        after_first = copy.deepcopy(project.data)

        expected = ['$(inherited)', f'"{root / "Sources" / "KitUI" / "private"}"']
        for configuration in project.build_configurations('KitUI'):
            assert configuration['buildSettings']['HEADER_SEARCH_PATHS'] == expected
        assert configurator.fix_header_search_paths(project, graph) == []
        assert project.data == after_first

    @pytest.mark.unit
    def test_idempotent(self, project, package_graph):
        """Test running the fix twice changes nothing the second time."""
        configurator = ProjectConfigurator()
        configurator.fix_header_search_paths(project, package_graph)
        after_first = copy.deepcopy(project.data)

        changed = configurator.fix_header_search_paths(project, package_graph)

        assert changed == []
        assert project.data == after_first


@pytest.fixture
def sdwebimage_package(temp_workspace) -> Path:
    """SDWebImage-like layout: headers under Core, nested symlinks under include/SDWebImage."""
    root = temp_workspace / 'SDWebImage'
    core = root / 'SDWebImage' / 'Core'
    (core / 'Private').mkdir(parents=True)
    (core / 'SDWebImageManager.h').write_text('// manager\n')
    (core / 'UIImageView+WebCache.h').write_text('// category\n')
    (core / 'Private' / 'SDInternalMacros.h').write_text('// macros\n')
    (core / 'SDWebImageManager.m').write_text('// impl\n')

    nested = root / 'SDWebImage' / 'include' / 'SDWebImage'
    nested.mkdir(parents=True)
    os.symlink(os.path.relpath(core / 'SDWebImageManager.h', nested), nested / 'SDWebImageManager.h')

    (root / 'WebImage').mkdir()
    (root / 'WebImage' / 'SDWebImage.h').write_text('// umbrella\n')
    return root


def sdwebimage_graph(root: Path) -> SwiftPackageGraph:
    target = GraphTarget(
        name='SDWebImage',
        module_type='ClangTarget',
        package='SDWebImage',
        package_root=root,
        source_root=root / 'SDWebImage',
        include_dir=root / 'SDWebImage' / 'include',
    )
    product = Product(name='SDWebImage', type=ProductType.LIBRARY, targets=['SDWebImage'], package='SDWebImage')
    return SwiftPackageGraph('SDWebImage', root, [product], [target])


class TestHeaderSymlinks:
    """Test flattening of symlinked public headers."""

    @pytest.mark.unit
    def test_headers_linked_into_include(self, sdwebimage_package):
        """Test each header gets a relative link directly in include/."""
        graph = sdwebimage_graph(sdwebimage_package)
        include = sdwebimage_package / 'SDWebImage' / 'include'

        links = ProjectConfigurator().fix_header_symlinks(graph, HeaderSymlinkFix())

        assert sorted(p.name for p in links) == [
            'SDInternalMacros.h', 'SDWebImage.h', 'SDWebImageManager.h', 'UIImageView+WebCache.h'
        ]
        for link in links:
            assert link.parent == include
            assert link.is_symlink()
            assert not os.path.isabs(os.readlink(link))
            assert link.exists()
        assert (include / 'SDWebImage.h').read_text() == '// umbrella\n'

    @pytest.mark.unit
    def test_nested_directory_removed(self, sdwebimage_package):
        """Test the nested link directory is removed."""
        graph = sdwebimage_graph(sdwebimage_package)

        ProjectConfigurator().fix_header_symlinks(graph, HeaderSymlinkFix())

        assert not (sdwebimage_package / 'SDWebImage' / 'include' / 'SDWebImage').exists()

    @pytest.mark.unit
    def test_existing_entries_replaced(self, sdwebimage_package):
        """Test running twice replaces the links created the first time."""
        graph = sdwebimage_graph(sdwebimage_package)
        configurator = ProjectConfigurator()

        first = configurator.fix_header_symlinks(graph, HeaderSymlinkFix())
        second = configurator.fix_header_symlinks(graph, HeaderSymlinkFix())

        assert first == second

    @pytest.mark.unit
    def test_missing_target_is_a_no_op(self, package_graph, package_dir, snapshot):
        """Test an absent target returns None without touching files."""
        before = snapshot(package_dir)

        result = ProjectConfigurator().fix_header_symlinks(package_graph, HeaderSymlinkFix())

        assert result is None
        assert snapshot(package_dir) == before

    @pytest.mark.unit
    def test_target_without_include_dir(self, package_graph):
        """Test a target with no public headers directory is skipped."""
        fix = HeaderSymlinkFix(target='Kit')

        assert ProjectConfigurator().fix_header_symlinks(package_graph, fix) is None
