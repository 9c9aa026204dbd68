#!/usr/bin/env python3
"""
CipherHunt Environment Setup Verification Script

This script validates that the project setup is correctly configured:
- Python package imports from all cipherhunt modules
- config.yaml structure
- .env template and python-dotenv loading
- Dependency availability
- logs/ directory permissions and .gitignore exclusions

Usage:
    python verify_setup.py
    python verify_setup.py --verbose
"""

import sys
import re
from pathlib import Path
from typing import Dict, List, Tuple
import importlib
import argparse


class Colors:
    """ANSI color codes for terminal output"""
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    BOLD = '\033[1m'
    RESET = '\033[0m'


PACKAGE_MODULES = [
    'cipherhunt.core',
    'cipherhunt.chain',
    'cipherhunt.orchestrators',
    'cipherhunt.players',
    'cipherhunt.session',
]

# Distribution name -> import name
DEPENDENCIES: Dict[str, str] = {
    'loguru': 'loguru',
    'pydantic': 'pydantic',
    'PyYAML': 'yaml',
    'python-dotenv': 'dotenv',
}

REQUIRED_CONFIG_FIELDS = ['contract_address', 'event_id_prefix', 'status']
ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


class EnvironmentValidator:
    """Validates the CipherHunt development environment"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.results: List[Tuple[str, bool, str]] = []
        self.project_root = Path(__file__).parent.resolve()

    def log(self, message: str, level: str = "info"):
        """Print messages based on verbosity"""
        if self.verbose or level == "error":
            prefix = {
                "info": f"{Colors.BLUE}ℹ{Colors.RESET}",
                "success": f"{Colors.GREEN}✓{Colors.RESET}",
                "error": f"{Colors.RED}✗{Colors.RESET}",
                "warning": f"{Colors.YELLOW}⚠{Colors.RESET}"
            }.get(level, "")
            print(f"{prefix} {message}")

    def add_result(self, test_name: str, passed: bool, details: str = ""):
        """Record a check result"""
        self.results.append((test_name, passed, details))
        status = f"{Colors.GREEN}PASS{Colors.RESET}" if passed else f"{Colors.RED}FAIL{Colors.RESET}"
        print(f"[{status}] {test_name}")
        if details and (not passed or self.verbose):
            print(f"      {details}")

    def validate_imports(self) -> bool:
        """Import every cipherhunt module"""
        self.log("Validating Python package imports...", "info")

        all_passed = True
        for module_name in PACKAGE_MODULES:
            try:
                importlib.import_module(module_name)
                self.add_result(f"Import {module_name}", True, "Module imported successfully")
            except ImportError as e:
                self.add_result(f"Import {module_name}", False, f"ImportError: {str(e)}")
                all_passed = False
            except Exception as e:
                self.add_result(f"Import {module_name}", False, f"Unexpected error: {str(e)}")
                all_passed = False

        return all_passed

    def validate_config_yaml(self) -> bool:
        """Validate config.yaml exists, parses and has the required fields"""
        self.log("Validating config.yaml...", "info")

        config_path = self.project_root / "config.yaml"

        if not config_path.exists():
            self.add_result("config.yaml exists", False, f"File not found at {config_path}")
            return False

        self.add_result("config.yaml exists", True, f"Found at {config_path}")

        try:
            import yaml
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)

            if not isinstance(config, dict):
                self.add_result("config.yaml loads with PyYAML", False, "File does not contain a mapping")
                return False

            self.add_result("config.yaml loads with PyYAML", True, "YAML parsing successful")

            missing_fields = [field for field in REQUIRED_CONFIG_FIELDS if field not in config]
            if missing_fields:
                self.add_result("config.yaml structure", False,
                                f"Missing required fields: {', '.join(missing_fields)}")
                return False

            self.add_result("config.yaml structure", True,
                            f"All required fields present: {', '.join(REQUIRED_CONFIG_FIELDS)}")

            address = config.get('contract_address')
            if not isinstance(address, str) or not ADDRESS_PATTERN.match(address):
                self.add_result("config.yaml contract_address format", False,
                                f"Expected 0x followed by 40 hex digits, got {address!r}")
                return False

            self.add_result("config.yaml contract_address format", True, address)
            return True

        except yaml.YAMLError as e:
            self.add_result("config.yaml loads with PyYAML", False, f"YAML parsing error: {str(e)}")
            return False
        except Exception as e:
            self.add_result("config.yaml loads with PyYAML", False, f"Unexpected error: {str(e)}")
            return False

    def validate_env_file(self) -> bool:
        """Validate .env template and python-dotenv loading"""
        self.log("Validating .env file...", "info")

        env_path = self.project_root / ".env"
        env_example_path = self.project_root / ".env.example"

        if not env_example_path.exists():
            self.add_result(".env.example exists", False, "Template file not found")
            return False

        self.add_result(".env.example exists", True, "Template file found")

        # .env is optional: config.yaml alone is a complete configuration
        if not env_path.exists():
            self.log("No .env file, using config.yaml values only", "warning")
        else:
            self.add_result(".env exists", True, "Environment file found")

        try:
            from dotenv import dotenv_values

            values = dotenv_values(env_path) if env_path.exists() else {}
            self.add_result("python-dotenv loads", True, "dotenv module functional")

            address = values.get('CIPHERHUNT_CONTRACT_ADDRESS')
            if address is not None and not ADDRESS_PATTERN.match(address):
                self.add_result(".env contract address", False,
                                f"CIPHERHUNT_CONTRACT_ADDRESS is not an address: {address!r}")
                return False

            return True

        except ImportError as e:
            self.add_result("python-dotenv loads", False, f"ImportError: {str(e)}")
            return False
        except Exception as e:
            self.add_result("python-dotenv loads", False, f"Unexpected error: {str(e)}")
            return False

    def validate_dependencies(self) -> bool:
        """Validate third-party dependencies are importable"""
        self.log("Validating installed dependencies...", "info")

        all_installed = True
        for dist_name, module_name in DEPENDENCIES.items():
            try:
                importlib.import_module(module_name)
                self.add_result(f"Dependency: {dist_name}", True, "Installed and importable")
            except ImportError:
                self.add_result(f"Dependency: {dist_name}", False,
                                "Not installed or not importable")
                all_installed = False

        return all_installed

    def validate_logs_directory(self) -> bool:
        """Validate logs directory exists and is writable"""
        self.log("Validating logs directory...", "info")

        logs_dir = self.project_root / "logs"

        if not logs_dir.exists():
            self.add_result("logs/ directory exists", False, "Directory not found")
            return False

        self.add_result("logs/ directory exists", True, "Directory found")

        test_file = logs_dir / ".write_test"
        try:
            with open(test_file, 'w') as f:
                f.write("write test")

            self.add_result("logs/ directory writable", True, "Write permission confirmed")

            if test_file.exists():
                test_file.unlink()

            return True

        except PermissionError:
            self.add_result("logs/ directory writable", False, "Permission denied")
            return False
        except Exception as e:
            self.add_result("logs/ directory writable", False, f"Error: {str(e)}")
            return False

    def validate_gitignore(self) -> bool:
        """Validate .gitignore excludes local files"""
        self.log("Validating .gitignore configuration...", "info")

        gitignore_path = self.project_root / ".gitignore"

        if not gitignore_path.exists():
            self.add_result(".gitignore exists", False, "File not found")
            return False

        self.add_result(".gitignore exists", True, "File found")

        try:
            with open(gitignore_path, 'r') as f:
                gitignore_content = f.read()

            critical_patterns = {
                '.env': '.env file (deployment overrides)',
                'logs/': 'logs directory'
            }

            all_present = True
            for pattern, description in critical_patterns.items():
                if pattern in gitignore_content:
                    self.add_result(f".gitignore excludes {pattern}", True,
                                    f"Protected: {description}")
                else:
                    self.add_result(f".gitignore excludes {pattern}", False,
                                    f"Should exclude {description}")
                    all_present = False

            return all_present

        except Exception as e:
            self.add_result(".gitignore validation", False, f"Error: {str(e)}")
            return False

    def print_summary(self):
        """Print summary of all validation results"""
        print(f"\n{Colors.BOLD}{'='*70}{Colors.RESET}")
        print(f"{Colors.BOLD}VALIDATION SUMMARY{Colors.RESET}")
        print(f"{Colors.BOLD}{'='*70}{Colors.RESET}\n")

        total_checks = len(self.results)
        passed_checks = sum(1 for _, passed, _ in self.results if passed)
        failed_checks = total_checks - passed_checks

        print(f"Total Checks: {total_checks}")
        print(f"{Colors.GREEN}Passed: {passed_checks}{Colors.RESET}")
        print(f"{Colors.RED}Failed: {failed_checks}{Colors.RESET}")

        if failed_checks == 0:
            print(f"\n{Colors.GREEN}{Colors.BOLD}✓ ALL CHECKS PASSED{Colors.RESET}\n")
            return True

        print(f"\n{Colors.RED}{Colors.BOLD}✗ SOME CHECKS FAILED{Colors.RESET}")
        print(f"{Colors.BOLD}Failed Checks:{Colors.RESET}")
        for check_name, passed, details in self.results:
            if not passed:
                print(f"  • {check_name}")
                if details:
                    print(f"    {details}")
        print()

        return False

    def run_all_validations(self) -> bool:
        """Run all validation checks"""
        print(f"\n{Colors.BOLD}CipherHunt Environment Validation{Colors.RESET}")
        print(f"{Colors.BOLD}{'='*70}{Colors.RESET}\n")

        self.validate_imports()
        self.validate_config_yaml()
        self.validate_env_file()
        self.validate_dependencies()
        self.validate_logs_directory()
        self.validate_gitignore()

        return self.print_summary()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='Validate CipherHunt environment setup',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python verify_setup.py          # Run validation with standard output
  python verify_setup.py -v       # Run with verbose output
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')

    args = parser.parse_args()

    validator = EnvironmentValidator(verbose=args.verbose)

    try:
        success = validator.run_all_validations()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Validation interrupted by user{Colors.RESET}")
        sys.exit(130)


if __name__ == "__main__":
    main()
