from __future__ import annotations
from typing import Dict, Iterable, List
import logging
from .classes import AlignedRead

logger = logging.getLogger("bamsubset.grouping")


class BarcodeIndex:
    """
    Reads partitioned by barcode, each group kept in arrival order.

    Built once from the whole read stream and only read afterwards, so the
    assembly workers can share it without locking.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, List[AlignedRead]] = {}
        self.dropped = 0

    @classmethod
    def from_reads(cls, reads: Iterable[AlignedRead]) -> "BarcodeIndex":
        index = cls()
        for read in reads:
            index.insert(read)
        return index

    def insert(self, read: AlignedRead) -> bool:
        barcode = read.barcode
        if not barcode:
            self.dropped += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"I could not detect the barcode in this read: {read.name or read!r}")
            return False
        if barcode not in self._groups:
            self._groups[barcode] = []
        self._groups[barcode].append(read)
        return True

    def group_count(self) -> int:
        return len(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def barcodes(self) -> List[str]:
        return sorted(self._groups)

    def group(self, barcode: str) -> List[AlignedRead]:
        return self._groups[barcode]

    def read_count(self) -> int:
        return sum(len(v) for v in self._groups.values())
