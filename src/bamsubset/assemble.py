from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import logging
import os
import traceback
import psutil
from .classes import AlignedRead, ConsensusRecord
from .grouping import BarcodeIndex

# Fixed vote tie-break order; anything else sorts after T lexicographically
NUCLEOTIDE_ORDER = {"A": 0, "C": 1, "G": 2, "T": 3}


def _make_logger(level: str) -> logging.Logger:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("bamsubset")
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    logger.setLevel(lvl)
    return logger


def _get_memory_usage() -> float:
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024 # Current memory usage in MB


def _base_rank(base: str) -> Tuple[int, str]:
    return (NUCLEOTIDE_ORDER.get(base, len(NUCLEOTIDE_ORDER)), base)


def _sort_reads(reads: Iterable[AlignedRead]) -> List[AlignedRead]:
    # sorted() is stable, so equal (start, end) keep arrival order
    return sorted(reads, key=lambda r: (r.start, r.end))


def segment_contigs(reads: Iterable[AlignedRead]) -> Iterator[List[AlignedRead]]:
    """
    Greedy interval merge over reads sorted by (start, end).

    Yields maximal runs of overlapping reads. A read joins the current run
    when its start is at or before the running contig end.
    """
    contig_end: Optional[int] = None
    contig_reads: List[AlignedRead] = []

    for read in _sort_reads(reads):
        if contig_end is not None and read.start <= contig_end:
            contig_reads.append(read)
            if read.end > contig_end:
                contig_end = read.end
        else:
            if contig_reads:
                yield contig_reads
            contig_reads = [read]
            contig_end = read.end

    if contig_reads:
        yield contig_reads


def build_consensus(contig_reads: Sequence[AlignedRead]) -> str:
    """Majority-vote base per reference position over one contig."""
    if not contig_reads:
        raise ValueError("build_consensus() needs at least one read")

    span_start = min(r.start for r in contig_reads)
    span_end = max(r.end for r in contig_reads)

    consensus_bases: List[str] = []
    for pos in range(span_start, span_end):
        base_counts: Dict[str, int] = {}
        for read in contig_reads:
            if not read.covers(pos):
                continue
            idx = pos - read.start
            # reference span can run past the stored bases (e.g. deletions)
            if idx >= len(read.bases):
                continue
            base = read.bases[idx]
            base_counts[base] = base_counts.get(base, 0) + 1

        if base_counts:
            best = min(base_counts.items(), key=lambda kv: (-kv[1], _base_rank(kv[0])))
            consensus_bases.append(best[0])

    return "".join(consensus_bases)


def assemble_group(barcode: str, reads: Iterable[AlignedRead]) -> List[ConsensusRecord]:
    records: List[ConsensusRecord] = []
    for ordinal, contig in enumerate(segment_contigs(reads), 1):
        records.append(ConsensusRecord(barcode, ordinal, build_consensus(contig)))
    return records


def _assemble_chunk(index: BarcodeIndex, barcodes: List[str]) -> List[ConsensusRecord]:
    out: List[ConsensusRecord] = []
    for barcode in barcodes:
        out.extend(assemble_group(barcode, index.group(barcode)))
    return out


def chunk_barcodes(barcodes: Sequence[str], threads: int) -> List[List[str]]:
    """Split keys into `threads` contiguous near-equal chunks, dropping empty ones."""
    threads = max(1, threads)
    size, extra = divmod(len(barcodes), threads)
    chunks: List[List[str]] = []
    pos = 0
    # chunks past the key count are always empty
    for i in range(min(threads, len(barcodes))):
        n = size + (1 if i < extra else 0)
        if n:
            chunks.append(list(barcodes[pos:pos + n]))
        pos += n
    return chunks


def assemble_contigs(
    index: BarcodeIndex,
    threads: int = 1,
    *,
    logger: logging.Logger | None = None,
) -> List[ConsensusRecord]:
    """
    Consensus records for every barcode group in the index.

    Barcode groups are split into `threads` chunks and assembled on a thread
    pool. The result is ordered by barcode, then transcript ordinal, whatever
    order the workers finish in. If any chunk fails, the remaining chunks
    still run to completion before the first error is raised.
    """
    threads = max(1, threads)
    chunks = chunk_barcodes(index.barcodes(), threads)
    workers = min(threads, len(chunks))
    if logger:
        logger.info(f"Assembling {len(index)} barcode(s) in {len(chunks)} chunk(s) on {workers} thread(s)")

    records: List[ConsensusRecord] = []
    errors: List[BaseException] = []
    if chunks:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_chunk = {executor.submit(_assemble_chunk, index, chunk): chunk for chunk in chunks}
            for future in as_completed(future_to_chunk):
                chunk = future_to_chunk[future]
                try:
                    records.extend(future.result())
                except Exception as e:
                    errors.append(e)
                    if logger:
                        logger.error(f"Chunk {chunk[0]}..{chunk[-1]} ({len(chunk)} barcodes) failed: {e}")
                        logger.debug("Traceback of failed chunk:\n" + "".join(
                            traceback.format_exception(type(e), e, e.__traceback__)))

    if errors:
        raise errors[0]

    records.sort(key=lambda r: (r.barcode, r.ordinal))
    if logger:
        logger.info(f"Assembled {len(records)} contig(s); memory: {_get_memory_usage():.1f} MB")
    return records


def assemble_single(reads: Iterable[AlignedRead]) -> str:
    """Ignore barcodes; concatenate the consensus of every contig in coordinate order."""
    return "".join(build_consensus(contig) for contig in segment_contigs(reads))
