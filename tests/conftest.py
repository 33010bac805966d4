import pytest


class FakeAln:
    def __init__(self, name, pos, seq, tags=None, reference_end=None, is_unmapped=False,
                 reference_name="chr1"):
        self.query_name = name
        self.pos = pos
        self.query_sequence = seq
        self.reference_end = pos + len(seq) if reference_end is None else reference_end
        self.is_unmapped = is_unmapped
        self.reference_name = reference_name
        # bamnostic layout: {tag: (value_type, value)}
        self.tags = {k: ("Z" if isinstance(v, str) else "i", v) for k, v in (tags or {}).items()}

    def get_tag(self, tag, with_value_type=False):
        value_type, value = self.tags[tag]
        return (value, value_type) if with_value_type else value


class FakeAlignmentFile:
    def __init__(self, alns):
        self._alns = alns
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __iter__(self):
        return iter(self._alns)

    def close(self):
        self.closed = True


@pytest.fixture
def example_alns():
    return [
        FakeAln("r1", 0, "ACGTA", {"CB": "AAAA"}),
        FakeAln("r2", 10, "TTTTT", {"CB": "AAAA"}),
        FakeAln("r3", 3, "TAGGC", {"CB": "AAAA"}),
        FakeAln("r4", 100, "GGGG", {"CB": "CCCC"}),
        FakeAln("r5", 5, "NNNN"),
        FakeAln("r6", 7, "AAAA", {"CB": "AAAA"}, is_unmapped=True),
    ]


@pytest.fixture
def fake_bam(monkeypatch, example_alns):
    """Replace bamnostic.AlignmentFile with an in-memory file of example_alns."""
    import bamnostic

    opened = []

    def fake_alignmentfile(path, mode):
        opened.append(path)
        return FakeAlignmentFile(example_alns)

    monkeypatch.setattr(bamnostic, "AlignmentFile", fake_alignmentfile)
    return opened
