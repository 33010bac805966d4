import argparse
import traceback

import psutil

from .assemble import _make_logger, assemble_contigs, assemble_single
from .fasta import write_fasta, write_single_fasta
from .grouping import BarcodeIndex
from .reader import DEFAULT_BARCODE_TAG, read_bam_file
from .viewer import view_bam_head


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Test by taking the top-view (head) of BAM files
    if args.cmd in ["view", "head"]:
        return view_bam_head(args.bams, n=args.num, tag=args.tag)

    # Per-barcode consensus contigs
    elif args.cmd == "assemble":
        return run_assemble(
            bam_path=args.bam,
            out_path=args.out,
            tag=args.tag,
            threads=args.threads,
            log_level=args.log_level,
            progress_every=args.progress_every,
        )

    # One sequence for the whole file
    elif args.cmd == "contig":
        return run_contig(
            bam_path=args.bam,
            out_path=args.out,
            accession=args.accession,
            log_level=args.log_level,
        )
    else:
        parser.error("Unknown command")

    return 2


def run_assemble(
    bam_path: str,
    out_path: str,
    *,
    tag: str = DEFAULT_BARCODE_TAG,
    threads: int | None = None,
    log_level: str = "INFO",
    progress_every: int = 1000000,
) -> int:
    logger = _make_logger(log_level)
    if threads is None:
        threads = psutil.cpu_count() or 1
    if threads < 1:
        logger.warning(f"--threads {threads} is below 1; using 1")
        threads = 1

    try:
        reads = read_bam_file(bam_path, tag=tag, logger=logger, progress_every=progress_every)
        index = BarcodeIndex.from_reads(reads)
        logger.info(
            f"{index.group_count()} barcode(s) with {index.read_count()} reads; "
            f"{index.dropped} reads without a {tag} tag skipped"
        )
        records = assemble_contigs(index, threads, logger=logger)
        n = write_fasta(records, out_path)
    except Exception as e:
        logger.error(f"{bam_path}: {e}")
        logger.debug("Traceback after Exception on assemble:\n" + traceback.format_exc())
        return 1

    logger.info(f"Wrote {n} consensus sequence(s) to {out_path}")
    return 0


def run_contig(bam_path: str, out_path: str, accession: str, *, log_level: str = "INFO") -> int:
    logger = _make_logger(log_level)
    try:
        sequence = assemble_single(read_bam_file(bam_path, logger=logger))
        write_single_fasta(out_path, accession, sequence)
    except Exception as e:
        logger.error(f"{bam_path}: {e}")
        logger.debug("Traceback after Exception on contig:\n" + traceback.format_exc())
        return 1

    logger.info(f"Contig assembled ({len(sequence)} bp) and written to {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bamsubset",
        description="Per-barcode consensus contigs from a BAM file with bamnostic."
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Sanity checking of BAM files
    t = sub.add_parser(
        "view",
        aliases=["head"],
        help="Print first N reads from each BAM file with their barcode (bamnostic-based)."
    )
    t.add_argument(
        "bams",
        nargs="+",
        help="One or more BAM files or glob patterns."
    )
    t.add_argument(
        "-n", "--num",
        type=int,
        default=10,
        help="Number of reads per BAM."
    )
    t.add_argument(
        "--tag",
        default=DEFAULT_BARCODE_TAG,
        help=f"Barcode tag to show (default {DEFAULT_BARCODE_TAG})."
    )

    # Consensus per barcode
    a = sub.add_parser(
        "assemble",
        help="Group reads by barcode, merge overlapping reads into contigs and write one consensus per contig."
    )
    a.add_argument(
        "bam",
        help="Input BAM file."
    )
    a.add_argument(
        "--out",
        required=True,
        help="Output FASTA path (.gz for gzipped output)."
    )
    a.add_argument(
        "--tag",
        default=DEFAULT_BARCODE_TAG,
        help=f"String tag holding the cell/sample barcode (default {DEFAULT_BARCODE_TAG})."
    )
    a.add_argument(
        "-t", "--threads",
        type=int,
        default=None,
        help="Worker threads; barcodes are split into this many chunks (default: number of CPUs)."
    )
    a.add_argument(
        "--progress-every",
        dest="progress_every",
        type=int,
        default=1000000,
        help="Log progress every N alignments (default 1000000, 0 disables)."
    )
    a.add_argument(
        "--log-level",
        default="INFO",
        choices=["ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity (default: INFO)."
    )

    # Single contig over all reads
    c = sub.add_parser(
        "contig",
        help="Ignore barcodes and write the consensus of all reads as one sequence."
    )
    c.add_argument(
        "bam",
        help="Input BAM file."
    )
    c.add_argument(
        "--out",
        required=True,
        help="Output FASTA path."
    )
    c.add_argument(
        "--accession",
        required=True,
        help="FASTA accession id for the sequence."
    )
    c.add_argument(
        "--log-level",
        default="INFO",
        choices=["ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity (default: INFO)."
    )
    return p

if __name__ == "__main__":
    raise SystemExit(main())
