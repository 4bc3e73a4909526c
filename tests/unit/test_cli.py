from __future__ import annotations

import zipfile

import pytest

from cli import main


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("PDF2EPUB_COMPRESSION", "PDF2EPUB_LINE_TOLERANCE"):
        monkeypatch.delenv(name, raising=False)


def test_cli_convert_then_validate(tmp_path, sample_pdf, capsys):
    source = tmp_path / "report.pdf"
    source.write_bytes(sample_pdf)

    assert main(["convert", "--input", str(source)]) == 0
    out_path = capsys.readouterr().out.strip()
    assert out_path.endswith("report.epub")

    assert main(["validate", "--input", out_path]) == 0
    assert capsys.readouterr().out.strip() == "valid"


def test_cli_convert_store(tmp_path, sample_pdf):
    source = tmp_path / "report.pdf"
    source.write_bytes(sample_pdf)
    target = tmp_path / "stored.epub"

    assert main(["convert", "--input", str(source), "--out", str(target), "--store"]) == 0
    with zipfile.ZipFile(target) as zf:
        assert {info.compress_type for info in zf.infolist()} == {zipfile.ZIP_STORED}


def test_cli_convert_broken_pdf_fails(tmp_path):
    source = tmp_path / "broken.pdf"
    source.write_bytes(b"%PDF-1.4\nnothing else")

    assert main(["convert", "--input", str(source)]) == 1
    assert not (tmp_path / "broken.epub").exists()


def test_cli_validate_rejects_non_zip(tmp_path):
    bogus = tmp_path / "bogus.epub"
    bogus.write_bytes(b"plain text")
    assert main(["validate", "--input", str(bogus)]) == 1


def test_cli_requires_existing_input(tmp_path):
    with pytest.raises(SystemExit):
        main(["convert", "--input", str(tmp_path / "missing.pdf")])


def test_cli_validate_reports_malformed_opf(tmp_path, sample_pdf):
    source = tmp_path / "report.pdf"
    source.write_bytes(sample_pdf)
    assert main(["convert", "--input", str(source)]) == 0

    built = tmp_path / "report.epub"
    broken = tmp_path / "broken.epub"
    with zipfile.ZipFile(built) as src, zipfile.ZipFile(broken, "w") as dst:
        for info in src.infolist():
            payload = b"<package" if info.filename == "OEBPS/content.opf" else src.read(info)
            dst.writestr(info.filename, payload, compress_type=info.compress_type)

    assert main(["validate", "--input", str(broken)]) == 1


def test_cli_title_with_path_separator_keeps_default_output(tmp_path, sample_pdf):
    source = tmp_path / "report.pdf"
    source.write_bytes(sample_pdf)

    assert main(["convert", "--input", str(source), "--title", "Q1/Q2 figures"]) == 0
    assert (tmp_path / "report.epub").exists()
