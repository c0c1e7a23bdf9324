"""
FastAPI backend service for statement parsing.
"""
from fastapi import FastAPI, File, UploadFile, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import tempfile
import shutil
from urllib.parse import quote
from pathlib import Path
import logging
from typing import Optional

from cmbparser.core.detectors import TemplateDetector
from cmbparser.core.errors import InvalidFileTypeError, StatementError
from cmbparser.core.export import render_csv
from cmbparser.core.runner import parse_statement
from cmbparser.core.tables import SORT_FIELDS, filter_transactions, sort_transactions
from cmbparser.models.schema import ParsedResult, ReferencePeriod

app = FastAPI(title="CMB Statement Parser", version="1.0.0")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite and other dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _parse_upload(file: UploadFile, year: Optional[int], month: Optional[int]) -> ParsedResult:
    """Spool an upload to disk and parse it, mapping failures to HTTP errors."""
    if not file.filename or not file.filename.lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail=str(InvalidFileTypeError(file.filename)))

    current = ReferencePeriod.current()
    try:
        period = ReferencePeriod(year=year or current.year, month=month or current.month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid reference period: {e}")

    with tempfile.NamedTemporaryFile(delete=False, suffix='.pdf') as tmp_file:
        tmp_path = Path(tmp_file.name)
        try:
            shutil.copyfileobj(file.file, tmp_file)
            tmp_file.close()

            logger.info(f"Processing PDF: {file.filename}")
            result = parse_statement(tmp_path, default_period=period)
            logger.info(f"Successfully parsed PDF: {len(result.transactions)} transactions found")
            return result

        except StatementError as e:
            logger.warning(f"Unusable statement {file.filename}: {e}")
            raise HTTPException(status_code=422, detail=str(e))

        except Exception as e:
            logger.error(f"Error parsing PDF: {e}")
            raise HTTPException(status_code=500, detail=f"Error parsing PDF: {str(e)}")

        finally:
            if tmp_path.exists():
                tmp_path.unlink()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "CMB Statement Parser API", "status": "healthy"}


@app.post("/parse")
def parse_pdf(
    file: UploadFile = File(...),
    year: Optional[int] = None,
    month: Optional[int] = None,
    filter: Optional[str] = None,
    sort: str = Query("original_index"),
    desc: bool = False,
):
    """
    Parse a PDF statement and return its transactions.

    Args:
        file: Uploaded PDF file
        year, month: Statement period to assume when the PDF prints none
        filter: Only return transactions matching this text
        sort: Column to sort by
        desc: Sort descending

    Returns:
        Parsed statement data as JSON
    """
    if sort not in SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort}")

    result = _parse_upload(file, year, month)
    rows = sort_transactions(filter_transactions(result.transactions, filter), sort, desc)

    return JSONResponse(content={
        "success": True,
        "headers": result.headers,
        "transactions": [t.model_dump(mode="json", by_alias=True) for t in rows],
        "summary": {
            "transactions_count": len(result.transactions),
            "shown_count": len(rows),
            "reference_period": result.reference_period.model_dump() if result.reference_period else None,
        }
    })


@app.post("/parse/csv")
def parse_pdf_csv(
    file: UploadFile = File(...),
    year: Optional[int] = None,
    month: Optional[int] = None,
):
    """Parse a PDF statement and return it as a CSV download."""
    result = _parse_upload(file, year, month)
    filename = Path(file.filename).with_suffix('.csv').name
    # Header values are latin-1; non-ASCII names go in filename*
    fallback = filename if filename.isascii() else 'transactions.csv'
    return Response(
        content=render_csv(result).encode('utf-8'),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"},
    )


@app.post("/detect-template")
def detect_pdf_template(file: UploadFile = File(...)):
    """
    Detect which template matches a PDF file.

    Args:
        file: Uploaded PDF file

    Returns:
        Detected template ID
    """
    if not file.filename or not file.filename.lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    with tempfile.NamedTemporaryFile(delete=False, suffix='.pdf') as tmp_file:
        tmp_path = Path(tmp_file.name)
        try:
            shutil.copyfileobj(file.file, tmp_file)
            tmp_file.close()
            template = TemplateDetector().detect_template(tmp_path)
        except Exception as e:
            logger.error(f"Error detecting template: {e}")
            raise HTTPException(status_code=500, detail=f"Error detecting template: {str(e)}")
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    if not template:
        raise HTTPException(status_code=400, detail="No matching template found")

    return JSONResponse(content={
        "success": True,
        "template": template
    })


@app.get("/templates")
async def list_templates():
    """List all available templates."""
    detector = TemplateDetector()
    templates = []
    for template_id in detector.list_templates():
        config = detector.get_template(template_id)
        templates.append({
            "id": template_id,
            "name": config.get('name', template_id),
            "bank": config.get('bank'),
            "description": config.get('description', '')
        })
    return JSONResponse(content={
        "success": True,
        "templates": templates
    })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
