from __future__ import annotations
from pathlib import Path
import gzip
from typing import Iterable, TextIO
from .classes import ConsensusRecord


def _open_text_out(path: str | Path) -> TextIO:
    p = Path(path)
    if p.suffix.lower() == ".gz":
        return gzip.open(p, "wt", encoding="utf-8")
    return open(p, "wt", encoding="utf-8")


def _fasta_entry(r: ConsensusRecord) -> str:
    return f">{r.label}\n{r.sequence}\n"


def write_fasta(records: Iterable[ConsensusRecord], out_path: str | Path) -> int:
    """
    Write one unwrapped two-line FASTA entry per record.
    Output is gzipped when out_path ends with .gz.
    """
    pout = Path(out_path)
    pout.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with _open_text_out(pout) as fout:
        for r in records:
            fout.write(_fasta_entry(r))
            count += 1
    return count


def write_single_fasta(out_path: str | Path, accession: str, sequence: str) -> None:
    pout = Path(out_path)
    pout.parent.mkdir(parents=True, exist_ok=True)
    with _open_text_out(pout) as fout:
        fout.write(f">{accession}\n{sequence}\n")
