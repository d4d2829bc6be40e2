"""A batch of uploaded files and the analysis results attached to them.

Items are frozen. Every update swaps in a replacement built with
``dataclasses.replace``, so a holder of an old item never sees it change.
"""

import dataclasses
import json
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core import (
    FontColorReport,
    HistoryReport,
    LinkReport,
    PdfMetadata,
    RiskReport,
    analyze_fonts_and_colors,
    analyze_history,
    analyze_risk,
    defang_value,
    extract_links,
    extract_metadata,
    scan_geo_tags,
    serialize_metadata,
)
from .document import ParseError, PdfTrustError, ValidationError, extract_text, read_source, run_operation
from .mutate import (
    compress_pdf,
    convert_to_pdfa,
    modify_metadata,
    output_filename,
    sanitize_metadata,
    watermark_pdf,
)
from .quality import AtsReport, QualityReport, analyze_ats, analyze_quality

logger = logging.getLogger("pdftrust")

ANALYZERS: dict[str, Callable[[bytes], Any]] = {
    "fonts": analyze_fonts_and_colors,
    "links": extract_links,
    "history": analyze_history,
    "geo": scan_geo_tags,
    "quality": analyze_quality,
}

TRANSFORMS: dict[str, Callable[..., bytes]] = {
    "watermark": watermark_pdf,
    "compress": compress_pdf,
    "pdfa": convert_to_pdfa,
}

BatchInput = tuple[str, bytes] | str | Path


@dataclass(frozen=True)
class BatchItem:
    """One uploaded file with its metadata, risk and any lazy analyses."""

    id: str
    filename: str
    data: bytes = field(repr=False)
    metadata: PdfMetadata
    risk: RiskReport
    ats: AtsReport | None = None
    fonts: FontColorReport | None = None
    links: LinkReport | None = None
    history: HistoryReport | None = None
    geo: list[str] | None = None
    quality: QualityReport | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view of the item without the raw bytes."""
        return {
            "id": self.id,
            "filename": self.filename,
            "filesize": len(self.data),
            "metadata": serialize_metadata(self.metadata),
            "risk": self.risk,
            "ats": self.ats,
            "fonts": self.fonts,
            "links": self.links,
            "history": self.history,
            "geo": self.geo,
            "quality": self.quality,
        }


@dataclass(frozen=True)
class BatchFailure:
    filename: str
    error: str


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a mutating operation on one item."""

    filename: str
    output_name: str | None = None
    data: bytes | None = field(default=None, repr=False)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Batch:
    """Ordered collection of batch items."""

    def __init__(self) -> None:
        self._items: list[BatchItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    @property
    def items(self) -> tuple[BatchItem, ...]:
        return tuple(self._items)

    def add_files(self, files: Iterable[BatchInput]) -> list[BatchFailure]:
        """Extract metadata and risk for each file, in order.

        Args:
            files: ``(filename, data)`` pairs or paths to PDF files.

        Returns:
            The files that could not be read, one entry per failure. Those
            files are skipped; the others are still added.
        """
        failures: list[BatchFailure] = []

        for entry in files:
            if isinstance(entry, tuple):
                filename, data = entry
            else:
                filename, data = Path(entry).name, None

            try:
                if data is None:
                    data = read_source(entry)
                metadata = extract_metadata(data)
                risk = analyze_risk(data, metadata)
            except (ValidationError, ParseError) as exc:
                logger.warning("Skipping %s: %s", filename, exc)
                failures.append(BatchFailure(filename=filename, error=str(exc)))
                continue

            item = BatchItem(
                id=uuid.uuid4().hex,
                filename=filename,
                data=data,
                metadata=metadata,
                risk=risk,
            )
            self._items.append(item)
            logger.info("Added %s (risk %d)", filename, risk["score"])

        return failures

    def get(self, item_id: str) -> BatchItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise KeyError(f"No batch item with id {item_id}")

    def remove(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]

    def reset(self) -> None:
        self._items = []

    def _replace(self, item_id: str, **changes: Any) -> BatchItem | None:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                updated = dataclasses.replace(item, **changes)
                self._items[index] = updated
                return updated
        # Removed while the operation ran; the result is dropped
        logger.info("Discarding result for removed item %s", item_id)
        return None

    def run(self, item_id: str, analyzer: str, job_description: str | None = None) -> BatchItem | None:
        """Run a lazy analyzer and attach its snapshot to the item.

        Args:
            item_id: Id of the item to analyze.
            analyzer: One of ``ats``, ``fonts``, ``links``, ``history``,
                ``geo`` or ``quality``.
            job_description: Required for ``ats``.

        Returns:
            The replacement item, or None if the item was removed meanwhile.

        Raises:
            KeyError: If there is no such item.
            ValueError: For an unknown analyzer or a missing job description.
            OperationError: If the analyzer fails. The item is unchanged.
        """
        item = self.get(item_id)

        if analyzer == "ats":
            if job_description is None:
                raise ValueError("ATS analysis needs a job description")
            result = run_operation(
                analyzer, item.filename,
                lambda: analyze_ats(extract_text(item.data), job_description),
            )
        elif analyzer in ANALYZERS:
            result = run_operation(analyzer, item.filename, ANALYZERS[analyzer], item.data)
        else:
            raise ValueError(f"Unknown analyzer: {analyzer}")

        return self._replace(item_id, **{analyzer: result})

    def save_metadata(self, item_id: str, patch: Mapping[str, str | None]) -> tuple[str, bytes]:
        """Apply a metadata patch to an item.

        The item is replaced with the rewritten bytes, freshly extracted
        metadata and a re-scored risk. Snapshots computed from the old bytes
        are cleared.

        Returns:
            Tuple of (output filename, modified bytes).
        """
        item = self.get(item_id)

        def _save() -> tuple[bytes, PdfMetadata, RiskReport]:
            data = modify_metadata(item.data, patch)
            metadata = extract_metadata(data)
            return data, metadata, analyze_risk(data, metadata)

        data, metadata, risk = run_operation("modify", item.filename, _save)
        self._replace(
            item_id,
            data=data,
            metadata=metadata,
            risk=risk,
            ats=None,
            fonts=None,
            links=None,
            history=None,
            geo=None,
            quality=None,
        )
        return output_filename("modify", item.filename), data

    def transform(self, item_id: str, operation: str, **kwargs: Any) -> tuple[str, bytes]:
        """Watermark, compress or tag an item; the item itself is unchanged."""
        if operation not in TRANSFORMS:
            raise ValueError(f"Unknown operation: {operation}")
        item = self.get(item_id)
        data = run_operation(operation, item.filename, TRANSFORMS[operation], item.data, **kwargs)
        return output_filename(operation, item.filename), data

    def sanitize_all(self) -> list[OperationResult]:
        """Sanitize every item, reporting each outcome separately."""
        results: list[OperationResult] = []

        for item in list(self._items):
            try:
                data = run_operation("sanitize", item.filename, sanitize_metadata, item.data)
            except PdfTrustError as exc:
                results.append(OperationResult(filename=item.filename, error=str(exc)))
                continue
            results.append(OperationResult(
                filename=item.filename,
                output_name=output_filename("sanitize", item.filename),
                data=data,
            ))

        return results

    def export_report(self) -> list[dict[str, Any]]:
        """All items as JSON-ready records, strings defanged."""
        return defang_value([item.to_dict() for item in self._items])

    def export_json(self) -> str:
        return json.dumps(self.export_report(), indent=2)
