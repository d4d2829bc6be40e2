"""FastAPI HTTP server for pdftrust."""

import json
import logging
from typing import Annotated, Any, Callable

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from . import __version__
from .batch import Batch, BatchFailure
from .core import process
from .document import OperationError, ParseError, ValidationError, extract_text, is_pdf_bytes, run_operation
from .mutate import (
    compress_pdf,
    convert_to_pdfa,
    modify_metadata,
    output_filename,
    sanitize_metadata,
    template_patch,
    watermark_pdf,
)
from .quality import analyze_ats, analyze_quality

logger = logging.getLogger("pdftrust")

PDF_MEDIA_TYPE = "application/pdf"

app = FastAPI(
    title="pdftrust API",
    description="PDF trust and hygiene API - risk scoring, metadata editing and sanitizing, "
                "watermarking, compression, archival tagging and quality checks.",
    version=__version__,
)


async def _read_upload(file: UploadFile) -> bytes:
    if file.content_type and file.content_type != PDF_MEDIA_TYPE:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid content type: expected {PDF_MEDIA_TYPE}, got {file.content_type}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if not is_pdf_bytes(content):
        raise HTTPException(status_code=400, detail="Invalid file type: pdftrust only accepts PDF files.")
    return content


def _filename(file: UploadFile) -> str:
    return file.filename or "document.pdf"


def _run(operation: str, filename: str, func: Callable[..., Any], *args: Any) -> Any:
    try:
        return run_operation(operation, filename, func, *args)
    except (ValidationError, ParseError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OperationError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _pdf_response(operation: str, filename: str, data: bytes) -> Response:
    name = output_filename(operation, filename)
    return Response(
        content=data,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/analyze")
async def analyze_pdf(file: Annotated[UploadFile, File(description="PDF file to analyze")]):
    """Analyze a PDF file and return a full report.

    Upload a PDF file to receive a JSON report containing:
    - File hashes (MD5, SHA1, SHA256)
    - Document metadata with the recovered creation timezone
    - Risk score, flags and structural threats
    - Incremental update history
    - Geo/EXIF tag warnings
    - Annotation links

    All string fields in the response are defanged for safe handling.
    """
    content = await _read_upload(file)
    logger.info("Analyzing uploaded PDF: %s", file.filename)
    report = _run("analyze", _filename(file), process, content, _filename(file))
    logger.info("Analysis complete for uploaded PDF: %s", file.filename)
    return JSONResponse(content=report)


@app.post("/ats")
async def ats_match(
    file: Annotated[UploadFile, File(description="Resume PDF")],
    job_description: Annotated[str, Form(description="Job description text")],
):
    """Score a resume against the keywords of a job description."""
    content = await _read_upload(file)
    text = _run("ats", _filename(file), extract_text, content)
    return analyze_ats(text, job_description)


@app.post("/quality")
async def quality_report(file: Annotated[UploadFile, File(description="PDF file to check")]):
    """Keyword heatmap, spelling, language, margin, accessibility and contrast findings."""
    content = await _read_upload(file)
    return _run("quality", _filename(file), analyze_quality, content)


@app.post("/metadata")
async def edit_metadata(
    file: Annotated[UploadFile, File(description="PDF file to edit")],
    patch: Annotated[str | None, Form(description="JSON object of field updates")] = None,
    template: Annotated[str | None, Form(description="Metadata template id")] = None,
):
    """Rewrite metadata fields.

    Template fields are applied first, then the JSON patch. In the patch an
    empty string clears a field and null leaves it unchanged.
    """
    content = await _read_upload(file)

    fields: dict[str, Any] = {}
    if template:
        try:
            fields.update(template_patch(template))
        except KeyError as e:
            raise HTTPException(status_code=400, detail=str(e.args[0]))
    if patch:
        try:
            updates = json.loads(patch)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail=f"Invalid patch: {e}")
        if not isinstance(updates, dict):
            raise HTTPException(status_code=400, detail="Invalid patch: expected a JSON object")
        fields.update(updates)

    data = _run("modify", _filename(file), modify_metadata, content, fields)
    return _pdf_response("modify", _filename(file), data)


@app.post("/sanitize")
async def sanitize(file: Annotated[UploadFile, File(description="PDF file to sanitize")]):
    """Blank all standard metadata fields and reset dates to the epoch."""
    content = await _read_upload(file)
    data = _run("sanitize", _filename(file), sanitize_metadata, content)
    return _pdf_response("sanitize", _filename(file), data)


@app.post("/watermark")
async def watermark(
    file: Annotated[UploadFile, File(description="PDF file to watermark")],
    text: Annotated[str, Form(description="Watermark text (printable ASCII)")],
):
    content = await _read_upload(file)
    data = _run("watermark", _filename(file), watermark_pdf, content, text)
    return _pdf_response("watermark", _filename(file), data)


@app.post("/compress")
async def compress(file: Annotated[UploadFile, File(description="PDF file to compress")]):
    content = await _read_upload(file)
    data = _run("compress", _filename(file), compress_pdf, content)
    return _pdf_response("compress", _filename(file), data)


@app.post("/pdfa")
async def pdfa(file: Annotated[UploadFile, File(description="PDF file to tag")]):
    """Add an sRGB output intent. This is not a PDF/A conformance conversion."""
    content = await _read_upload(file)
    data = _run("pdfa", _filename(file), convert_to_pdfa, content)
    return _pdf_response("pdfa", _filename(file), data)


@app.post("/batch")
async def batch_report(files: Annotated[list[UploadFile], File(description="PDF files to analyze")]):
    """Analyze several uploads in order and return one report.

    Files that fail are listed under ``failures`` and don't stop the rest.
    """
    batch = Batch()
    failures: list[BatchFailure] = []

    for file in files:
        try:
            content = await _read_upload(file)
        except HTTPException as e:
            failures.append(BatchFailure(filename=_filename(file), error=str(e.detail)))
            continue
        failures.extend(batch.add_files([(_filename(file), content)]))

    return {
        "items": batch.export_report(),
        "failures": [{"filename": f.filename, "error": f.error} for f in failures],
    }


def main(host: str = "0.0.0.0", port: int = 8080):
    """Run the server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
