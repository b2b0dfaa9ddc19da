# workspace_runner/__init__.py

"""
Workspace build-and-test runner.

CLI entrypoint: python -m workspace_runner [full]

This package:
- Discovers the workspace's packages (prefixed top-level directories, umbrella last)
- Builds the whole workspace once
- Runs each package's fast tests, then optionally its full tests
- Folds every step into a single process exit status
"""

__version__ = "0.1.0"
