"""
Materials Excel Parser

This package provides an API that turns uploaded material price
spreadsheets into JSON records.

Key modules:
- main.py: FastAPI application with API endpoints
- excel_file_process.py: Upload validation and sheet parsing
- record_mapper.py: Row to record mapping and retention filter
- materials_mapping.py: Header-to-field table and value conversion
- config.py: Environment-driven settings
- utils/result.py: Result pattern implementation for error handling
"""
