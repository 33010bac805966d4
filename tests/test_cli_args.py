import gzip

import pytest

from bamsubset import cli


def test_cli_assemble(fake_bam, tmp_path):
    out = tmp_path / "results" / "contigs.fa"
    argv = ["assemble", "sample.bam", "--out", str(out), "--threads", "2"]

    # Call main() directly, so that the argparse will parse this list
    result = cli.main(argv)

    assert result == 0
    assert fake_bam == ["sample.bam"]
    assert out.read_text() == (
        ">AAAA|transcript_1\nACGTAGGC\n"
        ">AAAA|transcript_2\nTTTTT\n"
        ">CCCC|transcript_1\nGGGG\n"
    )


def test_cli_assemble_gzip_and_clamped_threads(fake_bam, tmp_path):
    out = tmp_path / "contigs.fa.gz"
    assert cli.main(["assemble", "sample.bam", "--out", str(out), "-t", "0"]) == 0
    with gzip.open(out, "rt") as fh:
        assert fh.read().startswith(">AAAA|transcript_1\nACGTAGGC\n")


def test_cli_contig(fake_bam, tmp_path):
    out = tmp_path / "all.fa"
    assert cli.main(["contig", "sample.bam", "--out", str(out), "--accession", "sample1"]) == 0
    # barcodes are ignored: the untagged read extends the first contig to [0, 9)
    # and loses the G/N and C/N ties, leaving its N only at position 8
    assert out.read_text() == ">sample1\nACGTAGGCNTTTTTGGGG\n"


def test_cli_assemble_open_error(monkeypatch, tmp_path):
    import bamnostic

    def broken(path, mode):
        raise OSError(f"cannot open {path}")

    monkeypatch.setattr(bamnostic, "AlignmentFile", broken)
    assert cli.main(["assemble", "nope.bam", "--out", str(tmp_path / "x.fa")]) == 1


def test_cli_requires_subcommand():
    with pytest.raises(SystemExit):
        cli.main([])
