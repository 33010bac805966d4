from __future__ import annotations
from pathlib import Path
from typing import Iterator, Optional
import logging
import bamnostic as bn
from .assemble import _get_memory_usage
from .classes import AlignedRead, make_read

DEFAULT_BARCODE_TAG = "CB"


def _get_read_name(aln) -> str:
    # Different libs/files expose different attributes
    for attr in ("query_name", "qname", "read_name"):
        v = getattr(aln, attr, None)
        if v:
            return v
    return ""


def _get_bases(aln) -> str:
    for attr in ("query_sequence", "seq"):
        v = getattr(aln, attr, None)
        if v:
            return v if isinstance(v, str) else str(v)
    return ""


def _get_barcode(aln, tag: str = DEFAULT_BARCODE_TAG) -> Optional[str]:
    """String value of `tag`, or None when missing or not a string."""
    try:
        # bamnostic keeps tags as {tag: (type, value)}; get_tag returns the value
        value = aln.get_tag(tag)
    except KeyError:
        return None
    if isinstance(value, str) and value:
        return value
    return None


def _extract_aligned_read(aln, tag: str = DEFAULT_BARCODE_TAG) -> Optional[AlignedRead]:
    """Pull the assembly fields out of a bamnostic alignment."""
    if getattr(aln, "is_unmapped", False):
        return None

    # bamnostic uses 'pos' (0-based) instead of 'reference_start'
    start = getattr(aln, "pos", 0) or 0
    bases = _get_bases(aln)
    return make_read(
        start,
        bases,
        _get_barcode(aln, tag),
        end=getattr(aln, "reference_end", None),
        name=_get_read_name(aln),
        reference=getattr(aln, "reference_name", None),
    )


def read_bam_file(
    bam_path: str | Path,
    *,
    tag: str = DEFAULT_BARCODE_TAG,
    logger: logging.Logger | None = None,
    progress_every: int = 1000000,
) -> Iterator[AlignedRead]:
    """Stream mapped reads of a BAM file as AlignedRead values."""
    if logger:
        logger.info(f"Reading {bam_path} (barcode tag {tag})")

    aligned_reads = 0
    references: set = set()
    with bn.AlignmentFile(str(bam_path), "rb") as bam:
        for aln in bam:
            read = _extract_aligned_read(aln, tag)
            if read is None:
                continue
            aligned_reads += 1
            references.add(read.reference)

            if logger and progress_every and aligned_reads % progress_every == 0:
                logger.info(f"Read {aligned_reads:,} alignments... (Memory: {_get_memory_usage():.1f} MB)")

            yield read

    if logger:
        logger.info(f"Done {bam_path}: aligned={aligned_reads}")
        if len(references) > 1:
            logger.warning(
                f"Reads span {len(references)} references; coordinates are merged as if "
                f"they were on a single reference"
            )
