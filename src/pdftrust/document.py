"""Document loading and the text/annotation extraction layer.

Every analyzer and transformer goes through :func:`load_document`, which
opens its own independent handle on the byte buffer. Nothing here is shared
between operations, so two operations on the same file never see each
other's state.
"""

import io
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, TypedDict, TypeVar

import magic
import pikepdf
from pypdf import PasswordType, PdfReader, PdfWriter
from pypdf.generic import ArrayObject, DictionaryObject, IndirectObject, NameObject, NullObject

logger = logging.getLogger("pdftrust")

T = TypeVar("T")

PdfSource = bytes | str | Path


class PdfTrustError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(PdfTrustError):
    """Raised when file validation fails."""


class ParseError(PdfTrustError):
    """Raised when a document cannot be opened as a PDF."""


class OperationError(PdfTrustError):
    """Raised when an operation the user asked for fails on one file."""

    def __init__(self, operation: str, filename: str, cause: Exception | None = None):
        self.operation = operation
        self.filename = filename
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed for {filename}{detail}")


class Annotation(TypedDict):
    """A page annotation, optionally pointing at a URL."""

    subtype: str | None
    url: str | None


class PageContent(TypedDict):
    """Text and annotations of one page (1-based page number)."""

    page_number: int
    text: str
    annotations: list[Annotation]


def validate_pdf(file_path: str | Path) -> Path:
    """Validate that a file path points to a readable PDF file.

    Args:
        file_path: Path to the file to validate.

    Returns:
        The validated Path object.

    Raises:
        ValidationError: If the file doesn't exist, isn't readable, or isn't a PDF.
    """
    path = Path(file_path)

    if not path.exists():
        raise ValidationError(f"File not found: {path}")

    if not path.is_file():
        raise ValidationError(f"Not a file: {path}")

    if not os.access(path, os.R_OK):
        raise ValidationError(f"File not readable: {path}")

    mime_type = magic.from_file(str(path), mime=True)
    if mime_type != "application/pdf":
        raise ValidationError(
            f"Invalid file type: expected PDF, got {mime_type}. "
            "pdftrust only accepts PDF files."
        )

    return path


def is_pdf_bytes(data: bytes) -> bool:
    """Check a buffer's content signature with libmagic."""
    return magic.from_buffer(data[:4096], mime=True) == "application/pdf"


def read_source(source: PdfSource) -> bytes:
    """Return the raw bytes of a buffer or a validated PDF path."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    return validate_pdf(source).read_bytes()


def run_operation(operation: str, filename: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a user-triggered operation, reporting failures as OperationError.

    Validation and parse errors keep their own type so callers can tell an
    unreadable file apart from an operation that broke half-way.
    """
    try:
        return func(*args, **kwargs)
    except (ValidationError, ParseError, OperationError):
        raise
    except Exception as exc:
        logger.error("%s failed for %s: %s", operation, filename, exc)
        raise OperationError(operation, filename, exc) from exc


_PDF_DATE = re.compile(
    r"^(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"(?:(Z)|([+-])(\d{2})'?(\d{2})?'?)?"
)


def parse_pdf_date(date_str: str | None) -> datetime | None:
    """Parse a PDF date string to an aware datetime.

    PDF dates are in format: D:YYYYMMDDHHmmSSOHH'mm'
    where O is the timezone offset direction (+/-/Z). Trailing components
    may be omitted; a missing offset is read as UTC.
    """
    if not date_str:
        return None

    match = _PDF_DATE.match(date_str.strip())
    if not match:
        return None

    year, month, day, hour, minute, second, _zulu, sign, tz_hour, tz_minute = match.groups()
    try:
        offset = timedelta(0)
        if sign:
            offset = timedelta(hours=int(tz_hour), minutes=int(tz_minute or 0))
            if sign == "-":
                offset = -offset
        return datetime(
            int(year),
            int(month or 1),
            int(day or 1),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=timezone(offset),
        )
    except ValueError:
        return None


def format_pdf_date(value: datetime) -> str:
    """Format an aware datetime as a PDF date string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    stamp = value.strftime("D:%Y%m%d%H%M%S")
    offset = value.utcoffset() or timedelta(0)
    if not offset:
        return stamp + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{stamp}{sign}{minutes // 60:02d}'{minutes % 60:02d}'"


def inherited_attribute(page: DictionaryObject, key: str) -> Any:
    """Look up a page attribute, following /Parent for inheritable keys."""
    node = page
    for _ in range(64):
        if key in node:
            return node[key]
        parent = node.get("/Parent")
        if parent is None:
            return None
        node = parent.get_object()
        if not isinstance(node, DictionaryObject):
            return None
    return None


def sync_xmp(data: bytes) -> bytes:
    """Re-derive the XMP document-info properties from the info dictionary.

    Title, creator, description, keywords, producer, creator tool and dates
    follow the info dictionary; every other XMP property is kept. A packet
    that cannot be parsed is dropped.
    """
    with pikepdf.open(io.BytesIO(data)) as pdf:
        if "/Metadata" not in pdf.Root:
            return data

        try:
            with pdf.open_metadata(set_pikepdf_as_editor=False, update_docinfo=False, strict=True) as meta:
                meta.load_from_docinfo(pdf.docinfo, delete_missing=True)
        except Exception as exc:
            # A stale packet would contradict the info dictionary
            logger.warning("Dropping XMP metadata that could not be rewritten: %s", exc)
            del pdf.Root["/Metadata"]

        buffer = io.BytesIO()
        pdf.save(buffer)
        return buffer.getvalue()


class DocumentHandle:
    """A parsed PDF behind a small accessor surface.

    Read-only handles wrap a reader and refuse to save. Mutable handles wrap
    a writer cloned from the reader. With ``sync_metadata`` set, saving also
    re-derives the XMP packet from the info dictionary whenever the document
    carries one, so the two metadata representations never disagree.
    """

    def __init__(self, reader: PdfReader, mutable: bool = False, sync_metadata: bool = False) -> None:
        self._reader = reader
        self._writer = PdfWriter(clone_from=reader) if mutable or sync_metadata else None
        self._sync_metadata = sync_metadata

    @property
    def mutable(self) -> bool:
        return self._writer is not None

    @property
    def _document(self) -> PdfReader | PdfWriter:
        return self._writer if self._writer is not None else self._reader

    @property
    def pages(self):
        return self._document.pages

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def _require_writer(self) -> PdfWriter:
        if self._writer is None:
            raise RuntimeError("Document was opened read-only")
        return self._writer

    def _catalog(self) -> DictionaryObject:
        if self._writer is not None:
            return self._writer._root_object
        return self._reader.trailer["/Root"].get_object()

    def info_text(self, key: str) -> str | None:
        """Return the undecoded info dictionary string, None when absent."""
        info = self._document.metadata
        if info is None or key not in info:
            return None
        value = info[key]
        if value is None or isinstance(value, NullObject):
            return None
        if isinstance(value, bytes):
            return value.decode("latin-1")
        return str(value)

    def set_info(self, fields: dict[str, str]) -> None:
        self._require_writer().add_metadata(fields)

    def catalog_get(self, key: str) -> Any:
        """Return a resolved catalog entry, or None."""
        catalog = self._catalog()
        if key not in catalog:
            return None
        return catalog[key]

    def catalog_has(self, key: str) -> bool:
        return key in self._catalog()

    def catalog_set(self, key: str, value: Any) -> None:
        self._require_writer()
        self._catalog()[NameObject(key)] = value

    def name_tree_has(self, key: str) -> bool:
        """Check whether the catalog's /Names dictionary has an entry."""
        names = self.catalog_get("/Names")
        return isinstance(names, DictionaryObject) and key in names

    def add_object(self, obj: Any) -> IndirectObject:
        """Add an indirect object to the document and return its reference."""
        return self._require_writer()._add_object(obj)

    def save(self, *, compact_objects: bool = False) -> bytes:
        """Serialize the document.

        Args:
            compact_objects: Compress page content streams and merge
                identical indirect objects before writing.
        """
        writer = self._require_writer()

        if compact_objects:
            for page in writer.pages:
                page.compress_content_streams()
            writer.compress_identical_objects(remove_identicals=True, remove_orphans=True)

        buffer = io.BytesIO()
        writer.write(buffer)
        data = buffer.getvalue()
        if self._sync_metadata and "/Metadata" in writer._root_object:
            data = sync_xmp(data)
        return data


def load_document(
    source: PdfSource, *, writable: bool = False, normalize_metadata: bool = False
) -> DocumentHandle:
    """Open a PDF.

    Args:
        source: Raw bytes or a path to a PDF file.
        writable: Open for mutation; saving leaves XMP untouched.
        normalize_metadata: Open for mutation; saving keeps XMP in sync with
            the info dictionary. Read-only handles have no side effects.

    Raises:
        ValidationError: If a path isn't a valid, readable PDF.
        ParseError: If the document cannot be opened.
    """
    data = read_source(source)

    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
            raise ParseError("Document is encrypted and needs a password")
        # Force the page tree to load so broken files fail here
        len(reader.pages)
        return DocumentHandle(reader, mutable=writable, sync_metadata=normalize_metadata)
    except ParseError:
        raise
    except Exception as exc:
        raise ParseError(f"Could not open PDF: {exc}") from exc


def _page_annotations(page: DictionaryObject) -> list[Annotation]:
    annotations = page.get("/Annots")
    if annotations is None:
        return []

    annotations = annotations.get_object()
    annot_list = annotations if isinstance(annotations, ArrayObject) else [annotations]

    found: list[Annotation] = []
    for annot_ref in annot_list:
        annot = annot_ref.get_object() if hasattr(annot_ref, "get_object") else annot_ref
        if not isinstance(annot, DictionaryObject):
            continue

        subtype = annot.get("/Subtype")
        url = None
        action = annot.get("/A")
        if action is not None:
            action = action.get_object()
            if isinstance(action, DictionaryObject) and action.get("/URI") is not None:
                url = str(action["/URI"])

        found.append(Annotation(subtype=str(subtype) if subtype else None, url=url))

    return found


def extract_pages(source: PdfSource) -> list[PageContent]:
    """Extract text and annotations page by page.

    A page whose text cannot be extracted contributes empty text rather than
    failing the whole document.
    """
    handle = load_document(source)
    pages: list[PageContent] = []

    for number, page in enumerate(handle.pages, start=1):
        try:
            text = page.extract_text()
        except Exception as exc:
            logger.warning("Text extraction failed on page %d: %s", number, exc)
            text = ""

        pages.append(PageContent(
            page_number=number,
            text=text,
            annotations=_page_annotations(page),
        ))

    return pages


def extract_text(source: PdfSource) -> str:
    """Return the document text, one space after each page."""
    return "".join(page["text"] + " " for page in extract_pages(source))
