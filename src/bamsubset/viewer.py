from __future__ import annotations
import os
import bamnostic as bn
import glob
from .reader import DEFAULT_BARCODE_TAG, _extract_aligned_read


def _expand_bam_patterns(bams: list[str]) -> list[str]:
    """Expand glob patterns (sample*.bam) cross-platform; keep order; de-dupe."""
    seen = set()
    out: list[str] = []
    for pat in bams:
        # If pattern contains wildcards, expand; otherwise treat as literal path
        matches = glob.glob(pat) if any(ch in pat for ch in "*?[]") else ([pat] if os.path.exists(pat) else [])
        if not matches:
            print(f"[WARNING] No BAMs matched: {pat}")
        for m in sorted(matches):
            if m not in seen:
                seen.add(m)
                out.append(m)
    return out


def view_bam_head(bams: list[str], n: int = 10, tag: str = DEFAULT_BARCODE_TAG) -> int:
    """
    Print the first N mapped reads from each BAM file using bamnostic.
    Supports wildcards like *.bam on Windows.

    Output is TSV: read_name, locus (0-based, half-open), read length, barcode
    ('NA' when the tag is missing).
    """
    bam_paths = _expand_bam_patterns(bams)
    if not bam_paths:
        print("[ERROR] No BAM files found.")
        return 1

    for bam in bam_paths:
        try:
            bf = bn.AlignmentFile(bam, "rb")
        except Exception as e:
            print(f"[ERROR] Could not open {bam}: {e}")
            return 1

        print(f"== {bam} ==")

        try:
            printed = 0
            missing = 0
            for aln in iter(bf):
                read = _extract_aligned_read(aln, tag)
                if read is None:
                    continue
                if read.barcode is None:
                    missing += 1

                print(f"{read.name or 'NA'}\t{read.reference or ''}:{read.start}-{read.end}"
                      f"\tlen={len(read.bases)}\t{tag}={read.barcode or 'NA'}")

                printed += 1
                if printed >= n:
                    break

            if printed == 0:
                print("[info] No mapped reads found.")
            elif missing:
                print(f"[info] {missing}/{printed} reads lack the {tag} tag and would be skipped.")
        finally:
            bf.close()

    return 0
