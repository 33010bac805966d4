from dataclasses import dataclass
from typing import Optional

# Only the fields the assembly needs are kept from each BAM record
@dataclass(frozen=True)
class AlignedRead:
    """Decoded alignment: 0-based half-open span, bases and barcode."""
    __slots__ = ('start', 'end', 'bases', 'barcode', 'name', 'reference')
    start: int  # 0-based inclusive
    end: int    # 0-based exclusive (reference end)
    bases: str
    barcode: Optional[str]
    name: str
    reference: Optional[str]

    def covers(self, pos: int) -> bool:
        return self.start <= pos < self.end


def make_read(
    start: int,
    bases: str,
    barcode: Optional[str] = None,
    end: Optional[int] = None,
    name: str = "",
    reference: Optional[str] = None,
) -> AlignedRead:
    # Without an explicit reference end the span is the sequenced length
    if end is None:
        end = start + len(bases)
    return AlignedRead(start, end, bases, barcode, name, reference)


# One consensus sequence per contig per barcode
@dataclass(frozen=True)
class ConsensusRecord:
    barcode: str
    ordinal: int  # 1-based per barcode
    sequence: str

    @property
    def label(self) -> str:
        return f"{self.barcode}|transcript_{self.ordinal}"
