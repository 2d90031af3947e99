"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and points the
service's log and upload directories at a scratch location.
"""
import os
import sys
import tempfile

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

_scratch = tempfile.mkdtemp(prefix="excel_parser_tests_")
os.environ.setdefault("EXCEL_PARSER_LOG_DIR", os.path.join(_scratch, "logs"))
os.environ.setdefault("EXCEL_PARSER_UPLOAD_DIR", os.path.join(_scratch, "uploads"))
