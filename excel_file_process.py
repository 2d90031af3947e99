import csv
import io
import os
import re
import logging
import time
import uuid
from typing import Any, BinaryIO, Dict, List, Optional

import numpy as np
import pandas as pd

from utils.result import Result
from materials_mapping import MaterialsMapping, DEFAULT_MAPPING
from record_mapper import map_rows

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/octet-stream",
})
SPREADSHEET_NAME = re.compile(r"\.(xlsx?|csv)$", re.IGNORECASE)

DEFAULT_MAX_SIZE = 10 * 1024 * 1024
COPY_CHUNK_SIZE = 1024 * 1024
CSV_ENCODINGS = ("utf-8-sig", "gb18030")


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.get('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"Starting {self.operation_name}", extra={**self.extra, "request_id": self.request_id})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={**self.extra, "request_id": self.request_id, "duration": duration}
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={**self.extra, "request_id": self.request_id, "duration": duration}
            )


class FileProcessor:
    """
    Handles an uploaded spreadsheet from validation to mapped records.

    This class contains methods to:
    - Validate presence and type of the upload
    - Store the upload in a temporary file and enforce the size limit
    - Read the first sheet into a header row and data rows
    - Map the rows to material records
    """

    @staticmethod
    def process_upload(
        filename: Optional[str],
        content_type: Optional[str],
        stream: Optional[BinaryIO],
        upload_dir: str,
        mapping: MaterialsMapping = DEFAULT_MAPPING,
        max_size: int = DEFAULT_MAX_SIZE,
    ) -> Result[List[Dict[str, Any]]]:
        """
        Parse an uploaded spreadsheet into material records.

        Args:
            filename: Original file name supplied by the client
            content_type: MIME type supplied by the client
            stream: Readable binary stream with the file content
            upload_dir: Directory for the temporary copy of the upload
            mapping: Field mapping table and value conversion rules
            max_size: Largest accepted upload in bytes

        Returns:
            Result[List[Dict[str, Any]]]: The retained records, or the failure
        """
        request_id = str(uuid.uuid4())[:8]
        log_context = {
            "request_id": request_id,
            "upload_name": filename,
            "content_type": content_type,
        }
        logger.info(f"Received spreadsheet upload: {filename or 'no file'}", extra=log_context)

        if stream is None or not filename:
            logger.warning("No file in request", extra=log_context)
            return Result.missing_file()

        if not FileProcessor._is_spreadsheet(filename, content_type):
            logger.warning(f"Rejected file type for {filename}", extra=log_context)
            return Result.invalid_file_type()

        temp_path = None
        try:
            temp_path = FileProcessor._temp_path(upload_dir, filename)
            with LogContext("save upload", **log_context):
                size = FileProcessor._save_upload(stream, temp_path, max_size)
            log_context["size_kb"] = round(size / 1024)

            if size > max_size:
                logger.warning(f"Upload exceeds {max_size} bytes", extra=log_context)
                return Result.file_too_large(max_size)

            with LogContext("sheet parsing", **log_context):
                sheet = FileProcessor._read_sheet(temp_path, filename)

            if not sheet:
                logger.warning("Excel file is empty", extra=log_context)
                return Result.empty_sheet()

            headers, rows = sheet[0], sheet[1:]
            logger.info(f"Header row: {headers}", extra=log_context)

            with LogContext("row mapping", **log_context):
                records = map_rows(headers, rows, mapping.table, mapping.converter())

            FileProcessor._log_summary(len(rows), records, log_context)
            return Result.ok(records)

        except Exception as e:
            logger.exception("Unexpected error while parsing upload", extra={**log_context, "error": str(e)})
            return Result.parse_error(str(e) or type(e).__name__)

        finally:
            FileProcessor._remove_temp_file(temp_path)

    @staticmethod
    def _is_spreadsheet(filename: str, content_type: Optional[str]) -> bool:
        """Accept a known spreadsheet MIME type or a spreadsheet file extension."""
        return content_type in ALLOWED_CONTENT_TYPES or bool(SPREADSHEET_NAME.search(filename))

    @staticmethod
    def _temp_path(upload_dir: str, filename: str) -> str:
        os.makedirs(upload_dir, exist_ok=True)
        extension = os.path.splitext(filename)[1].lower()
        return os.path.join(upload_dir, f"upload_{uuid.uuid4().hex}{extension}")

    @staticmethod
    def _save_upload(stream: BinaryIO, temp_path: str, max_size: int) -> int:
        """
        Copy the upload stream to temp_path.

        Copying stops once more than max_size bytes have been written, so the
        returned size only tells whether the limit was exceeded.

        Returns:
            Number of bytes written
        """
        written = 0
        with open(temp_path, "wb") as out:
            while written <= max_size:
                chunk = stream.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                written += len(chunk)
        return written

    @staticmethod
    def _read_sheet(path: str, filename: str) -> List[List[Any]]:
        """
        Read the first sheet of a spreadsheet as a list of rows.

        The first row is the header row. CSV cells are read as text and only
        blank cells count as missing; a CSV is read as wide as its widest
        line, so rows may be longer than the header.

        Args:
            path: Location of the temporary copy
            filename: Original file name, used to pick the reader

        Returns:
            Rows of Python values, trailing empty cells trimmed
        """
        if filename.lower().endswith(".csv"):
            text = FileProcessor._decode_csv(path)
            width = max((len(cells) for cells in csv.reader(io.StringIO(text))), default=0)
            if width == 0:
                return []
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                names=list(range(width)),
                dtype=object,
                keep_default_na=False,
                na_values=[""],
            )
        else:
            df = pd.read_excel(path, sheet_name=0, header=None)

        logger.debug(f"Read sheet with {len(df)} rows and {len(df.columns)} columns")
        return FileProcessor._frame_to_rows(df)

    @staticmethod
    def _decode_csv(path: str) -> str:
        """
        Read a CSV upload as text.

        UTF-8 (with or without BOM) is tried first; files saved by Excel on
        Chinese-locale systems are GBK, read here as gb18030.
        """
        with open(path, "rb") as fh:
            content = fh.read()
        for encoding in CSV_ENCODINGS:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                logger.debug(f"CSV upload is not {encoding}")
        raise ValueError(f"Cannot decode CSV file, tried {', '.join(CSV_ENCODINGS)}")

    @staticmethod
    def _frame_to_rows(df: pd.DataFrame) -> List[List[Any]]:
        rows = []
        for values in df.itertuples(index=False, name=None):
            cells = [FileProcessor._cell_value(value) for value in values]
            while cells and cells[-1] is None:
                cells.pop()
            rows.append(cells)
        return rows

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None or pd.isna(value):
            return None
        if isinstance(value, np.generic):
            return value.item()
        return value

    @staticmethod
    def _log_summary(row_count: int, records: List[Dict[str, Any]], log_context: Dict[str, Any]) -> None:
        filter_rate = round((1 - len(records) / row_count) * 100) if row_count else 0
        logger.info(
            f"Mapping finished: {row_count} rows in sheet, {len(records)} records kept, "
            f"filter rate {filter_rate}%",
            extra={**log_context, "row_count": row_count, "record_count": len(records)}
        )
        if records:
            logger.debug(f"Sample records: {records[:3]}", extra=log_context)

    @staticmethod
    def _remove_temp_file(temp_path: Optional[str]) -> None:
        if temp_path and os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.error(f"Could not remove temporary file {temp_path}: {e}")
