"""Core library functionality: metadata, risk, history and provenance."""

import hashlib
import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, TypedDict

import defang
from pypdf.generic import DictionaryObject

from .document import (
    DocumentHandle,
    PdfSource,
    extract_pages,
    inherited_attribute,
    load_document,
    parse_pdf_date,
    read_source,
)
from .tables import (
    CAMERA_TAGS,
    DATE_ANOMALY_DAYS,
    GPS_TAGS,
    RISK_LEVELS,
    RISK_SCORE_MAX,
    RISK_WEIGHTS,
    SUSPICIOUS_LINK_MARKERS,
    SUSPICIOUS_PRODUCERS,
)

logger = logging.getLogger("pdftrust")


class PdfMetadata(TypedDict):
    """Metadata extracted from a PDF file.

    None means the field is not present in the document; an empty string
    (or empty keyword list) means it was explicitly cleared.
    """

    title: str | None
    author: str | None
    subject: str | None
    keywords: list[str] | None
    creator: str | None
    producer: str | None
    creation_date: datetime | None
    modification_date: datetime | None
    page_count: int | None
    timezone_offset: str | None


class RiskReport(TypedDict):
    """Risk score with soft flags and structural threats."""

    score: int
    level: str
    flags: list[str]
    threats: list[str]


class HistoryReport(TypedDict):
    """Incremental update history of a PDF file."""

    has_incremental_updates: bool
    update_count: int
    has_prev_chain: bool


class LinkReport(TypedDict):
    """Annotation link targets found in a PDF file."""

    links: list[str]
    suspicious_links: list[str]


class FontColorReport(TypedDict):
    """Fonts referenced by pages and colours set by content streams."""

    fonts: list[str]
    colors: list[str]


class PdfReport(TypedDict):
    """Report structure for processed PDF files."""

    filename: str
    filesize: int
    md5: str
    sha1: str
    sha256: str
    metadata: dict[str, Any]
    risk: RiskReport
    history: HistoryReport
    geo_warnings: list[str]
    links: LinkReport


_RAW_TIMEZONE = re.compile(r"([+-]\d{2}'\d{2}'|Z)$")


def split_keywords(value: str | list[str]) -> list[str]:
    """Split a comma-joined keyword string into trimmed tokens."""
    tokens = value if isinstance(value, list) else value.split(",")
    return [token.strip() for token in tokens if token.strip()]


def recover_timezone(raw_date: str | None) -> str | None:
    """Return the timezone suffix of an undecoded PDF date, if any.

    Matches ``Z`` or ``+HH'mm'``/``-HH'mm'`` at the end of the string, as in
    ``D:20240101120000+05'30'``.
    """
    if not raw_date:
        return None
    match = _RAW_TIMEZONE.search(raw_date.strip())
    return match.group(1) if match else None


def _info_date(handle: DocumentHandle, key: str) -> datetime | None:
    raw = handle.info_text(key)
    parsed = parse_pdf_date(raw)
    if raw and parsed is None:
        logger.warning("Unparsable %s value: %r", key, raw)
    return parsed


def extract_metadata(source: PdfSource) -> PdfMetadata:
    """Extract the info dictionary fields of a PDF file.

    The document is opened read-only so the raw creation date string is
    still available for timezone recovery.

    Args:
        source: Raw bytes or a path to the PDF file.

    Returns:
        PdfMetadata with every standard field, page count and the raw
        timezone suffix of the creation date.

    Raises:
        ValidationError: If a path isn't a valid, readable PDF.
        ParseError: If the document cannot be opened.
    """
    handle = load_document(source)

    timezone_offset = None
    try:
        timezone_offset = recover_timezone(handle.info_text("/CreationDate"))
    except Exception as exc:
        logger.warning("Could not extract raw timezone: %s", exc)

    keywords = handle.info_text("/Keywords")

    return PdfMetadata(
        title=handle.info_text("/Title"),
        author=handle.info_text("/Author"),
        subject=handle.info_text("/Subject"),
        keywords=split_keywords(keywords) if keywords is not None else None,
        creator=handle.info_text("/Creator"),
        producer=handle.info_text("/Producer"),
        creation_date=_info_date(handle, "/CreationDate"),
        modification_date=_info_date(handle, "/ModDate"),
        page_count=handle.page_count,
        timezone_offset=timezone_offset,
    )


def serialize_metadata(metadata: PdfMetadata) -> dict[str, Any]:
    """Return a JSON-ready copy of a metadata record."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in metadata.items()
    }


def risk_level(score: int) -> str:
    for bound, level in RISK_LEVELS:
        if score < bound:
            return level
    return "high"


def score_metadata(metadata: PdfMetadata) -> tuple[int, list[str]]:
    """Score the soft metadata signals.

    Returns:
        Tuple of (accumulated weight, flags) for the triggered signals.
    """
    score = 0
    flags: list[str] = []

    if not metadata.get("creation_date"):
        flags.append("Missing creation date")
        score += RISK_WEIGHTS["missing_creation_date"]

    producer = metadata.get("producer")
    if producer and any(tool in producer.lower() for tool in SUSPICIOUS_PRODUCERS):
        flags.append(f"Suspicious producer tool detected: {producer}")
        score += RISK_WEIGHTS["suspicious_producer"]

    created = metadata.get("creation_date")
    modified = metadata.get("modification_date")
    if created and modified:
        seconds = abs((modified - created).total_seconds())
        if math.ceil(seconds / 86400) > DATE_ANOMALY_DAYS:
            flags.append(
                "Modification date is significantly later than creation date (> 1 year)"
            )
            score += RISK_WEIGHTS["date_anomaly"]

    author = metadata.get("author")
    if not author or not author.strip():
        flags.append("No author specified")
        score += RISK_WEIGHTS["missing_author"]

    return score, flags


def scan_threats(handle: DocumentHandle) -> tuple[int, list[str]]:
    """Look for active content in the document catalog.

    Returns:
        Tuple of (accumulated weight, threats).
    """
    score = 0
    threats: list[str] = []

    if handle.name_tree_has("/JavaScript"):
        threats.append("Embedded JavaScript detected (Potential Security Risk)")
        score += RISK_WEIGHTS["javascript"]

    open_action = handle.catalog_get("/OpenAction")
    if isinstance(open_action, DictionaryObject) and "/JS" in open_action:
        threats.append("Auto-executing JavaScript (OpenAction) detected")
        score += RISK_WEIGHTS["open_action_js"]

    if handle.name_tree_has("/EmbeddedFiles"):
        threats.append("Hidden embedded files detected")
        score += RISK_WEIGHTS["embedded_files"]

    return score, threats


def analyze_risk(source: PdfSource, metadata: PdfMetadata | None = None) -> RiskReport:
    """Score a PDF file for privacy and security risk.

    Metadata flags and the structural deep scan are independent: a failing
    deep scan is logged and counts as "no threats found".

    Args:
        source: Raw bytes or a path to the PDF file.
        metadata: Previously extracted metadata; extracted when omitted.

    Returns:
        RiskReport with a score clamped to 0-100.
    """
    if metadata is None:
        metadata = extract_metadata(source)

    score, flags = score_metadata(metadata)

    threat_score, threats = 0, []
    try:
        threat_score, threats = scan_threats(load_document(source))
    except Exception as exc:
        logger.warning("Deep scan failed: %s", exc)

    total = min(max(score + threat_score, 0), RISK_SCORE_MAX)
    return RiskReport(
        score=total,
        level=risk_level(total),
        flags=flags,
        threats=threats,
    )


_EOF_MARKER = b"%%EOF"
# An integer byte offset; outline items carry /Prev N 0 R references instead
_PREV_OFFSET = rb"/Prev\s+\d+\b(?!\s+\d+\s+R)"
_TRAILER_PREV = re.compile(
    rb"trailer\s*<<(?:(?!startxref).)*?" + _PREV_OFFSET + rb"(?:(?!startxref).)*?>>\s*startxref",
    re.DOTALL,
)
# Cross-reference streams keep /Prev in the stream dictionary instead.
_XREF_STREAM_PREV = re.compile(
    rb"/Type\s*/XRef\b(?:(?!stream|endobj).)*?" + _PREV_OFFSET
    + rb"|" + _PREV_OFFSET + rb"(?:(?!stream|endobj).)*?/Type\s*/XRef\b",
    re.DOTALL,
)


def analyze_history(source: PdfSource) -> HistoryReport:
    """Detect incremental updates in the raw serialization.

    A plain PDF has a single %%EOF marker; each appended revision adds one.
    A /Prev entry in a trailer or cross-reference stream means the file
    chains to an earlier cross-reference section, which holds even when
    the marker count alone says otherwise.
    """
    data = read_source(source)

    update_count = max(0, data.count(_EOF_MARKER) - 1)
    has_prev = bool(_TRAILER_PREV.search(data) or _XREF_STREAM_PREV.search(data))

    return HistoryReport(
        has_incremental_updates=update_count > 0 or has_prev,
        update_count=update_count,
        has_prev_chain=has_prev,
    )


def scan_geo_tags(source: PdfSource) -> list[str]:
    """Look for location and camera tags in the raw serialization."""
    text = read_source(source).decode("latin-1")
    warnings: list[str] = []

    if any(tag in text for tag in GPS_TAGS):
        warnings.append("Found XMP GPS Metadata tags (Potential Location Data)")

    # Pixel-level EXIF inside image streams is not decoded
    if any(tag in text for tag in CAMERA_TAGS):
        warnings.append("Found Camera EXIF tags (Images may contain hidden location data)")

    return warnings


def extract_links(source: PdfSource) -> LinkReport:
    """Collect annotation URLs in page order and flag suspicious ones."""
    links: list[str] = []
    suspicious: list[str] = []

    for page in extract_pages(source):
        for annotation in page["annotations"]:
            url = annotation["url"]
            if not url:
                continue
            links.append(url)
            if any(marker in url for marker in SUSPICIOUS_LINK_MARKERS):
                suspicious.append(url)

    return LinkReport(links=links, suspicious_links=suspicious)


_COLOR_OPERATORS = {b"rg", b"RG", b"g", b"G", b"k", b"K"}


def _color_hex(operands: list) -> str | None:
    try:
        values = [min(max(float(value), 0.0), 1.0) for value in operands]
    except (TypeError, ValueError):
        return None

    if len(values) == 1:
        rgb = values * 3
    elif len(values) == 3:
        rgb = values
    elif len(values) == 4:
        c, m, y, k = values
        rgb = [(1 - c) * (1 - k), (1 - m) * (1 - k), (1 - y) * (1 - k)]
    else:
        return None
    return "#" + "".join(f"{round(v * 255):02x}" for v in rgb)


def analyze_fonts_and_colors(source: PdfSource) -> FontColorReport:
    """List the fonts in page resources and the colours content streams set."""
    handle = load_document(source)
    fonts: set[str] = set()
    colors: set[str] = set()

    for number, page in enumerate(handle.pages, start=1):
        try:
            resources = inherited_attribute(page, "/Resources")
            font_dict = resources.get("/Font") if isinstance(resources, DictionaryObject) else None
            font_dict = font_dict.get_object() if font_dict is not None else None
            if isinstance(font_dict, DictionaryObject):
                for name in font_dict:
                    font = font_dict[name]
                    if isinstance(font, DictionaryObject) and font.get("/BaseFont"):
                        fonts.add(str(font["/BaseFont"]).lstrip("/"))
        except Exception as exc:
            logger.warning("Could not read font resources on page %d: %s", number, exc)

        try:
            content = page.get_contents()
            if content is None:
                continue
            for operands, operator in content.operations:
                if operator in _COLOR_OPERATORS:
                    color = _color_hex(operands)
                    if color:
                        colors.add(color)
        except Exception as exc:
            logger.warning("Could not parse content stream on page %d: %s", number, exc)

    return FontColorReport(fonts=sorted(fonts), colors=sorted(colors))


def defang_value(value):
    """Recursively defang all string values in a data structure.

    Args:
        value: A value that may be a string, list, dict, or primitive.

    Returns:
        The value with all strings defanged.
    """
    if value is None:
        return None
    elif isinstance(value, str):
        return defang.defang(value)
    elif isinstance(value, list):
        return [defang_value(item) for item in value]
    elif isinstance(value, dict):
        return {key: defang_value(val) for key, val in value.items()}
    else:
        # int, bool, float, etc. - return as-is
        return value


def compute_hashes(data: bytes) -> tuple[str, str, str]:
    """Compute MD5, SHA1, and SHA256 hashes of a buffer.

    Returns:
        Tuple of (md5, sha1, sha256) hex digests.
    """
    return (
        hashlib.md5(data).hexdigest(),
        hashlib.sha1(data).hexdigest(),
        hashlib.sha256(data).hexdigest(),
    )


def process(source: PdfSource, filename: str | None = None) -> PdfReport:
    """Process a PDF file and generate a report.

    All string fields in the output are defanged for safe handling.

    Args:
        source: Raw bytes or a path to the PDF file.
        filename: Name to report; defaults to the path's name.

    Returns:
        PdfReport containing hashes, metadata, risk, history, geo
        warnings and links.

    Raises:
        ValidationError: If a path isn't a valid, readable PDF.
        ParseError: If the document cannot be opened.
    """
    data = read_source(source)
    if filename is None:
        filename = "document.pdf" if isinstance(source, (bytes, bytearray, memoryview)) else Path(source).name

    md5, sha1, sha256 = compute_hashes(data)
    metadata = extract_metadata(data)

    report = PdfReport(
        filename=filename,
        filesize=len(data),
        md5=md5,
        sha1=sha1,
        sha256=sha256,
        metadata=serialize_metadata(metadata),
        risk=analyze_risk(data, metadata),
        history=analyze_history(data),
        geo_warnings=scan_geo_tags(data),
        links=extract_links(data),
    )

    return defang_value(report)
