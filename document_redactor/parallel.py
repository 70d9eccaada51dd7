"""
Multiprocessing orchestration for batch redaction.

Runs the full pipeline (validate, extract, detect, redact, verify) for
each input file, and fans files out over a multiprocessing Pool with
progress tracking and per-document error capture.
"""

import multiprocessing
from pathlib import Path
from typing import Optional, Callable
import logging

from tqdm import tqdm

from .models import CorpusResult, DocumentResult, PipelineOptions
from .validation import load_source, SUPPORTED_EXTENSIONS
from .extraction import extract_pages, load_pages_json, unscanned_pages
from .exceptions import ExtractionFailure, PageRenderFailure
from .detection import detect
from .redaction import redact
from .verify import verify_artifact
from .output_writer import write_redacted_file, REDACTED_SUFFIX


logger = logging.getLogger(__name__)


def find_documents(input_path: Path, subset: Optional[int] = None) -> list[Path]:
    """
    Collect the supported files under a path.

    Files already carrying the redacted suffix are skipped so a rerun over
    an output directory does not redact its own output.

    Args:
        input_path: A single file or a directory searched recursively
        subset: If set, only return the first N files

    Returns:
        Sorted list of files
    """
    if input_path.is_file():
        return [input_path]

    files = sorted(
        p for p in input_path.glob("**/*")
        if p.is_file()
        and p.suffix.lower() in SUPPORTED_EXTENSIONS
        and not p.stem.endswith(REDACTED_SUFFIX)
    )
    if subset is not None:
        files = files[:subset]
    return files


def process_document(
    path: Path,
    options: PipelineOptions,
    output_dir: Optional[Path] = None,
    pages_json: Optional[Path] = None
) -> DocumentResult:
    """
    Redact a single document.

    Args:
        path: Path to the input file
        options: Pipeline options
        output_dir: Directory for the redacted file (optional)
        pages_json: Saved extraction output to use instead of OCR (optional)

    Returns:
        DocumentResult; on failure it carries the error and no artifact.
        Unscanned pages and uncovered regions are failures, so no
        redacted file is written for them.
    """
    doc_id = path.stem
    result = DocumentResult(doc_id=doc_id, file_path=str(path))

    try:
        source = load_source(path, options.max_file_size)
        result.mime_type = source.mime_type

        if pages_json is not None:
            pages = load_pages_json(pages_json)
        else:
            pages = extract_pages(source, options.lang, options.ocr_zoom)
        result.total_pages = len(pages)

        # Pages are already parallel at the document level
        result.detections = detect(pages, options.detection, workers=1)
        result.artifact = redact(source, result.detections, options.redaction, pages)

        # Every page must have been scanned before its copy counts as redacted
        if result.artifact.is_paginated:
            result.total_pages = len(result.artifact.page_sizes)
            missing = unscanned_pages(pages, result.total_pages)
            if missing:
                raise ExtractionFailure(
                    source.name,
                    f"no text extracted for page(s) {', '.join(map(str, missing))}",
                    page_number=missing[0],
                )

        if options.verify:
            result.coverage = verify_artifact(
                result.artifact, result.detections, options.redaction, pages
            )
            uncovered = [c for c in result.coverage if not c.is_covered]
            if uncovered:
                raise PageRenderFailure(
                    uncovered[0].page_number,
                    f"{len(uncovered)} redacted region(s) not fully covered",
                )

        if output_dir is not None:
            result.output_path = str(write_redacted_file(result, output_dir))

    except Exception as e:
        logger.error(f"Error processing document {path}: {e}")
        result.artifact = None
        result.error = str(e)
        result.error_type = type(e).__name__
        result.error_page = getattr(e, "page_number", None)

    return result


def _process_document_wrapper(args: tuple) -> DocumentResult:
    """
    Wrapper for multiprocessing - unpacks arguments.
    """
    path, options, output_dir, pages_json = args
    return process_document(path, options, output_dir, pages_json)


def process_corpus(
    files: list[Path],
    output_dir: Optional[Path],
    options: PipelineOptions,
    workers: int = 4,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    pages_json: Optional[Path] = None
) -> CorpusResult:
    """
    Redact a batch of documents using parallel processing.

    Args:
        files: Input files
        output_dir: Directory for redacted files
        options: Pipeline options
        workers: Number of parallel workers
        progress_callback: Optional callback for progress updates (current, total)
        pages_json: Saved extraction output; only valid for a single file

    Returns:
        CorpusResult with all documents processed
    """
    total_files = len(files)

    if total_files == 0:
        logger.warning("No documents to process")
        return CorpusResult()

    if pages_json is not None and total_files != 1:
        raise ValueError("Saved extraction output can only be used with a single document")

    logger.info(f"Found {total_files} document(s) to process")

    args_list = [(path, options, output_dir, pages_json) for path in files]

    documents = []

    if workers <= 1 or total_files == 1:
        for i, args in enumerate(args_list):
            documents.append(_process_document_wrapper(args))
            if progress_callback:
                progress_callback(i + 1, total_files)
    else:
        with multiprocessing.Pool(min(workers, total_files)) as pool:
            # imap keeps input order
            for i, result in enumerate(pool.imap(_process_document_wrapper, args_list)):
                documents.append(result)
                if progress_callback:
                    progress_callback(i + 1, total_files)

    return CorpusResult(documents=documents)


def process_corpus_with_tqdm(
    files: list[Path],
    output_dir: Optional[Path],
    options: PipelineOptions,
    workers: int = 4,
    pages_json: Optional[Path] = None
) -> CorpusResult:
    """
    Process a batch of documents with a tqdm progress bar.

    Args:
        files: Input files
        output_dir: Directory for redacted files
        options: Pipeline options
        workers: Number of parallel workers
        pages_json: Saved extraction output; only valid for a single file

    Returns:
        CorpusResult with all documents processed
    """
    with tqdm(total=len(files), desc="Redacting documents", unit="file") as bar:
        def advance(current: int, total: int) -> None:
            bar.update(current - bar.n)

        return process_corpus(
            files, output_dir, options, workers,
            progress_callback=advance, pages_json=pages_json
        )


def get_processing_stats(corpus: CorpusResult) -> dict:
    """
    Get statistics about the processing run.

    Args:
        corpus: Completed corpus result

    Returns:
        Dictionary with processing statistics
    """
    successful_docs = [d for d in corpus.documents if d.error is None]
    failed_docs = [d for d in corpus.documents if d.error is not None]

    return {
        "total_documents": corpus.total_documents,
        "successful_documents": len(successful_docs),
        "failed_documents": len(failed_docs),
        "total_pages": corpus.total_pages,
        "total_detections": corpus.total_detections,
        "uncovered_regions": sum(d.uncovered_regions for d in corpus.documents),
        "failed_doc_ids": [d.doc_id for d in failed_docs],
        "failures": [
            {"doc_id": d.doc_id, "error_type": d.error_type, "page": d.error_page}
            for d in failed_docs
        ],
    }
