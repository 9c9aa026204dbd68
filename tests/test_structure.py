"""
Test to verify the project directory structure is correctly set up.
"""

import importlib
import subprocess
import sys
from pathlib import Path

import yaml


class TestProjectStructure:
    """Verify project directory structure and package initialization."""

    def test_package_directories_exist(self):
        """Verify all source code directories exist."""
        base_path = Path(__file__).parent.parent
        expected_dirs = [
            'cipherhunt',
            'cipherhunt/core',
            'cipherhunt/chain',
            'cipherhunt/orchestrators',
        ]

        for dir_path in expected_dirs:
            full_path = base_path / dir_path
            assert full_path.exists(), f"Directory {dir_path} does not exist"
            assert full_path.is_dir(), f"{dir_path} is not a directory"

    def test_test_directories_exist(self):
        """Verify all test directories exist."""
        base_path = Path(__file__).parent.parent
        expected_dirs = [
            'tests',
            'tests/unit',
            'tests/unit/core',
            'tests/unit/chain',
            'tests/unit/orchestrators',
            'tests/integration',
        ]

        for dir_path in expected_dirs:
            full_path = base_path / dir_path
            assert full_path.exists(), f"Directory {dir_path} does not exist"
            assert full_path.is_dir(), f"{dir_path} is not a directory"

    def test_logs_directory_exists(self):
        """Verify logs directory exists."""
        base_path = Path(__file__).parent.parent
        logs_dir = base_path / 'logs'

        assert logs_dir.exists(), "logs/ directory does not exist"
        assert logs_dir.is_dir(), "logs/ is not a directory"

    def test_package_init_files_exist(self):
        """Verify all __init__.py files exist in cipherhunt packages."""
        base_path = Path(__file__).parent.parent
        expected_init_files = [
            'cipherhunt/__init__.py',
            'cipherhunt/core/__init__.py',
            'cipherhunt/chain/__init__.py',
            'cipherhunt/orchestrators/__init__.py',
        ]

        for init_file in expected_init_files:
            full_path = base_path / init_file
            assert full_path.exists(), f"{init_file} does not exist"
            assert full_path.is_file(), f"{init_file} is not a file"

    def test_python_packages_importable(self):
        """Verify that cipherhunt packages can be imported."""
        base_path = Path(__file__).parent.parent
        sys.path.insert(0, str(base_path))

        try:
            import cipherhunt
            assert hasattr(cipherhunt, '__version__'), "cipherhunt package missing __version__"
        except ImportError as e:
            assert False, f"Cannot import cipherhunt package: {e}"

        for subpkg in ['core', 'chain', 'orchestrators', 'players', 'session', 'config']:
            try:
                module = importlib.import_module(f'cipherhunt.{subpkg}')
                assert module is not None, f"cipherhunt.{subpkg} module is None"
            except ImportError as e:
                assert False, f"Cannot import cipherhunt.{subpkg}: {e}"

    def test_packages_import_in_any_order(self):
        """Verify each package imports first in a fresh interpreter."""
        base_path = Path(__file__).parent.parent

        for module in ['cipherhunt.chain', 'cipherhunt.chain.simulated', 'cipherhunt.core',
                       'cipherhunt.orchestrators', 'cipherhunt.session', 'cipherhunt.__main__']:
            result = subprocess.run(
                [sys.executable, '-c', f'import {module}'],
                cwd=base_path,
                capture_output=True,
                text=True
            )
            assert result.returncode == 0, f"Importing {module} first failed: {result.stderr}"

    def test_conftest_exists(self):
        """Verify pytest conftest.py exists."""
        base_path = Path(__file__).parent.parent
        conftest = base_path / 'tests' / 'conftest.py'

        assert conftest.exists(), "tests/conftest.py does not exist"
        assert conftest.is_file(), "tests/conftest.py is not a file"

    def test_pyproject_declares_test_tools(self):
        """Verify pyproject.toml declares the test extra."""
        base_path = Path(__file__).parent.parent
        pyproject = base_path / 'pyproject.toml'

        assert pyproject.exists(), "pyproject.toml does not exist"

        content = pyproject.read_text()
        assert '[project.optional-dependencies]' in content
        assert 'pytest' in content, "pyproject.toml missing pytest"
        assert 'pytest-asyncio' in content, "pyproject.toml missing pytest-asyncio"

    def test_config_yaml_is_mapping(self):
        base_path = Path(__file__).parent.parent

        with open(base_path / 'config.yaml') as f:
            assert isinstance(yaml.safe_load(f), dict)

    def test_logs_directory_writable(self):
        """Verify logs directory is writable."""
        base_path = Path(__file__).parent.parent
        logs_dir = base_path / 'logs'

        test_file = logs_dir / 'test_write.txt'
        try:
            test_file.write_text('test')
            test_file.unlink()
            success = True
        except OSError:
            success = False

        assert success, "logs/ directory is not writable"
