"""
Output generation for redacted files, detections.json, detections.csv,
and summary.json.

Handles naming and writing redacted artifacts plus serialization of
detection data and aggregate statistics.
"""

import json
import csv
import logging
from pathlib import Path
from datetime import datetime

from .models import (
    BoundingBox, Category, CorpusResult, Detection, DetectionSet, DocumentResult,
    PipelineOptions,
)


logger = logging.getLogger(__name__)

REDACTED_SUFFIX = "_redacted"

# Singular/plural labels for human-readable counts
CATEGORY_LABELS = {
    Category.IDENTIFIER_A: ("identity number", "identity numbers"),
    Category.IDENTIFIER_B: ("tax identifier", "tax identifiers"),
    Category.PHONE: ("phone number", "phone numbers"),
    Category.ADDRESS: ("address", "addresses"),
}


def mask_value(value: str, visible: int = 4) -> str:
    """
    Hide all but the last `visible` alphanumerics of a detected value.

    Separators are kept so the shape of the value stays readable:
    "1234 5678 9012" -> "XXXX XXXX 9012".
    """
    remaining = sum(1 for c in value if c.isalnum())
    masked = []
    for c in value:
        if c.isalnum():
            masked.append(c if remaining <= visible else "X")
            remaining -= 1
        else:
            masked.append(c)
    return "".join(masked)


def redacted_filename(name: str) -> str:
    """
    Name for the redacted copy of a file: "scan.png" -> "scan_redacted.png".

    Args:
        name: Original file name

    Returns:
        File name with the redacted suffix before the extension
    """
    path = Path(name)
    return f"{path.stem}{REDACTED_SUFFIX}{path.suffix}"


def describe_counts(detections: DetectionSet) -> str:
    """
    Human-readable detection summary, e.g. "2 addresses, 1 phone number".

    Categories with no detections are left out.
    """
    parts = []
    for category in Category:
        count = len(detections.by_category(category))
        if count:
            singular, plural = CATEGORY_LABELS[category]
            parts.append(f"{count} {singular if count == 1 else plural}")
    return ", ".join(parts) if parts else "no sensitive information"


def write_redacted_file(doc: DocumentResult, output_dir: Path) -> Path:
    """
    Write a document's redacted artifact next to the other outputs.

    Args:
        doc: Document result carrying an artifact
        output_dir: Directory to write into

    Returns:
        Path of the written file
    """
    if doc.artifact is None:
        raise ValueError(f"Document {doc.doc_id} has no redacted artifact")

    output_path = output_dir / redacted_filename(Path(doc.file_path).name)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(doc.artifact.data)

    logger.debug(f"Wrote {output_path}")
    return output_path


def detection_to_dict(detection: Detection, reveal_values: bool = False) -> dict:
    data = detection.to_dict()
    if not reveal_values:
        data["value"] = mask_value(detection.value)
    return data


def document_to_dict(doc: DocumentResult, reveal_values: bool = False) -> dict:
    return {
        "doc_id": doc.doc_id,
        "file_path": doc.file_path,
        "mime_type": doc.mime_type,
        "total_pages": doc.total_pages,
        "output_path": doc.output_path,
        "total_detections": doc.total_detections,
        "counts": doc.detections.counts(),
        "summary": describe_counts(doc.detections),
        "redactions_applied": doc.artifact.redactions_applied if doc.artifact else 0,
        "uncovered_regions": doc.uncovered_regions,
        "error": doc.error,
        "error_type": doc.error_type,
        "error_page": doc.error_page,
        "detections": [detection_to_dict(d, reveal_values) for d in doc.detections.all()],
    }


def write_detections_json(
    corpus: CorpusResult,
    options: PipelineOptions,
    output_path: Path,
    reveal_values: bool = False
) -> None:
    """
    Write every document's detections to JSON.

    Detected values are masked unless `reveal_values` is set.

    Args:
        corpus: Complete corpus results
        options: Pipeline options used
        output_path: Path to write JSON file
        reveal_values: Write detected values in full
    """
    data = {
        "run_timestamp": datetime.now().isoformat(),
        "parameters": parameters_to_dict(options),
        "summary": {
            "total_documents": corpus.total_documents,
            "total_pages": corpus.total_pages,
            "total_detections": corpus.total_detections,
        },
        "documents": [document_to_dict(doc, reveal_values) for doc in corpus.documents],
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _csv_fieldnames() -> list[str]:
    placeholder = Detection(
        category=Category.PHONE, value="", confidence=0.0,
        bbox=BoundingBox(0, 0, 0, 0), page_number=0,
    )
    return ["doc_id", *placeholder.to_csv_row().keys()]


def write_detections_csv(
    corpus: CorpusResult,
    output_path: Path,
    reveal_values: bool = False
) -> None:
    """
    Write detections to CSV format (flat, one row per detection).

    Args:
        corpus: Complete corpus results
        output_path: Path to write CSV file
        reveal_values: Write detected values in full
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_csv_fieldnames())
        writer.writeheader()
        for doc, detection in corpus.all_detections:
            row = {"doc_id": doc.doc_id, **detection.to_csv_row()}
            if not reveal_values:
                row["value"] = mask_value(detection.value)
            writer.writerow(row)


def parameters_to_dict(options: PipelineOptions) -> dict:
    detection = options.detection
    return {
        "address_window": detection.address_window,
        "address_overlap_threshold": detection.address_overlap_threshold,
        "aggressive_matching": detection.aggressive_matching,
        "min_confidence": {c.value: v for c, v in detection.min_confidence},
        "fill_color": options.redaction.fill_hex,
        "lang": options.lang,
        "ocr_zoom": options.ocr_zoom,
        "verify": options.verify,
    }


def write_summary_json(
    corpus: CorpusResult,
    options: PipelineOptions,
    output_path: Path
) -> None:
    """
    Write aggregate statistics to summary.json.

    Args:
        corpus: Complete corpus results
        options: Pipeline options used
        output_path: Path to write summary file
    """
    category_totals = {category.value: 0 for category in Category}
    pass_totals: dict[str, int] = {}
    for _, detection in corpus.all_detections:
        category_totals[detection.category.value] += 1
        pass_totals[detection.match_pass.value] = pass_totals.get(detection.match_pass.value, 0) + 1

    failed = [d for d in corpus.documents if d.error]
    error_types: dict[str, int] = {}
    for doc in failed:
        key = doc.error_type or "Error"
        error_types[key] = error_types.get(key, 0) + 1

    summary = {
        "run_timestamp": datetime.now().isoformat(),
        "parameters": parameters_to_dict(options),
        "corpus_stats": {
            "total_documents": corpus.total_documents,
            "redacted_documents": sum(1 for d in corpus.documents if d.artifact is not None),
            "documents_with_errors": len(failed),
            "total_pages": corpus.total_pages,
            "total_detections": corpus.total_detections,
            "uncovered_regions": sum(d.uncovered_regions for d in corpus.documents),
        },
        "detections_by_category": category_totals,
        "detections_by_pass": pass_totals,
        "errors_by_type": error_types,
        "documents": {
            doc.doc_id: describe_counts(doc.detections)
            for doc in corpus.documents if not doc.error
        },
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)


def write_all_outputs(
    corpus: CorpusResult,
    options: PipelineOptions,
    output_dir: Path,
    reveal_values: bool = False
) -> dict[str, Path]:
    """
    Write all report files (detections.json, detections.csv, summary.json).

    Redacted files are written per document as they are produced.

    Args:
        corpus: Complete corpus results
        options: Pipeline options used
        output_dir: Base output directory
        reveal_values: Write detected values in full instead of masked

    Returns:
        Dictionary mapping output type to file path
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "detections_json": output_dir / "detections.json",
        "detections_csv": output_dir / "detections.csv",
        "summary_json": output_dir / "summary.json",
    }

    write_detections_json(corpus, options, paths["detections_json"], reveal_values)
    write_detections_csv(corpus, paths["detections_csv"], reveal_values)
    write_summary_json(corpus, options, paths["summary_json"])

    return paths
