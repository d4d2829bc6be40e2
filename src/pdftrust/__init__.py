"""pdftrust - PDF risk scoring, metadata hygiene and light transforms."""

from importlib.metadata import version

__version__ = version("pdftrust")

from .document import (
    load_document,
    extract_pages,
    extract_text,
    validate_pdf,
    DocumentHandle,
    PdfTrustError,
    ValidationError,
    ParseError,
    OperationError,
)
from .core import (
    process,
    extract_metadata,
    analyze_risk,
    analyze_history,
    scan_geo_tags,
    extract_links,
    analyze_fonts_and_colors,
    PdfReport,
    PdfMetadata,
    RiskReport,
    HistoryReport,
)
from .mutate import (
    modify_metadata,
    sanitize_metadata,
    watermark_pdf,
    watermark_placement,
    compress_pdf,
    convert_to_pdfa,
    template_patch,
    output_filename,
    MetadataPatch,
)
from .quality import analyze_ats, analyze_quality, AtsReport, QualityReport
from .batch import Batch, BatchItem

__all__ = [
    "load_document",
    "extract_pages",
    "extract_text",
    "validate_pdf",
    "DocumentHandle",
    "PdfTrustError",
    "ValidationError",
    "ParseError",
    "OperationError",
    "process",
    "extract_metadata",
    "analyze_risk",
    "analyze_history",
    "scan_geo_tags",
    "extract_links",
    "analyze_fonts_and_colors",
    "PdfReport",
    "PdfMetadata",
    "RiskReport",
    "HistoryReport",
    "modify_metadata",
    "sanitize_metadata",
    "watermark_pdf",
    "watermark_placement",
    "compress_pdf",
    "convert_to_pdfa",
    "template_patch",
    "output_filename",
    "MetadataPatch",
    "analyze_ats",
    "analyze_quality",
    "AtsReport",
    "QualityReport",
    "Batch",
    "BatchItem",
    "__version__",
]
