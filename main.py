from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
import os
import logging
from datetime import datetime, timezone
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from excel_file_process import FileProcessor
from materials_mapping import load_mapping

settings = get_settings()

# Create logs directory if it doesn't exist
os.makedirs(settings.log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file; module loggers propagate to root
log_file_path = os.path.join(settings.log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)

# Loaded once; shared read-only by all requests
mapping = load_mapping(settings.mapping_path)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Materials Excel Parser API",
    description="API for parsing material price spreadsheets into JSON records",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API Endpoints
@app.post(
    "/api/parseExcel",
    tags=["Excel Processing"]
)
async def parse_excel(request: Request):
    """
    Parse an uploaded spreadsheet into material records.

    The first sheet is read with its first row as the header. Mapped columns
    are converted and only the first 10 data rows are considered; rows
    without a purchase price or tax rate are dropped. The multipart form is
    read here rather than declared as a parameter, so a missing file or an
    excelFile field sent as plain text gets the MissingFile response.

    Returns:
        list: The retained records as a bare JSON array, or
        {"success": false, "message": ...} with a 4xx/5xx status on failure
    """
    form = await request.form()
    try:
        excel_file = form.get("excelFile")
        if not isinstance(excel_file, UploadFile):
            result = await run_in_threadpool(
                FileProcessor.process_upload,
                None, None, None, settings.upload_dir, mapping, settings.max_upload_bytes
            )
        else:
            result = await run_in_threadpool(
                FileProcessor.process_upload,
                excel_file.filename,
                excel_file.content_type,
                excel_file.file,
                settings.upload_dir,
                mapping,
                settings.max_upload_bytes,
            )
    finally:
        await form.close()

    if result.is_failure():
        return JSONResponse(status_code=result.status_code.value, content=result.to_error_body())
    return result.data


@app.get(
    "/health",
    tags=["Health"]
)
def health():
    """Liveness check."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Excel parser API on http://{settings.host}:{settings.port}")
    logger.info(f"Supported headers: {', '.join(mapping.headers)}")
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=True)
