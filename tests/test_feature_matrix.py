import pandas as pd
import pytest

from meta_ith.data_processing import find_feature_column, load_feature_matrix
from meta_ith.errors import MalformedInputError
from meta_ith.utils import read_list_file


def _write(path, text):
    path.write_text(text)
    return str(path)


def test_load_frequency_matrix(tmp_path):
    path = _write(tmp_path / "DNA_P1_frequency_matrix.txt",
                  "coords\tN\tT1\tT2\n"
                  "chr1:100\t0\t0.2\t0.4\n"
                  "chr2:200\t0\t0.1\t0.3\n")
    matrix = load_feature_matrix(path)
    assert list(matrix.columns) == ["N", "T1", "T2"]
    assert list(matrix.index) == ["chr1:100", "chr2:200"]
    assert matrix.index.name == "coords"
    assert matrix.loc["chr1:100", "T2"] == pytest.approx(0.4)
    assert (matrix.dtypes == float).all()


def test_feature_column_found_by_name(tmp_path):
    path = _write(tmp_path / "rna.txt",
                  "N\tT1\tGene\tT2\n"
                  "1.5\t2.0\tTP53\t3.0\n")
    matrix = load_feature_matrix(path)
    assert list(matrix.columns) == ["N", "T1", "T2"]
    assert list(matrix.index) == ["TP53"]


def test_utf8_bom_header(tmp_path):
    path = tmp_path / "bom.txt"
    path.write_bytes("\ufeffGene\tN\tT1\nA\t1\t2\n".encode("utf-8"))
    matrix = load_feature_matrix(str(path))
    assert matrix.index.name == "Gene"


def test_exclude_and_require_columns(tmp_path):
    path = _write(tmp_path / "dna.txt", "coords\tN\tT1\tT2\nx\t0\t0.5\t0.1\n")
    matrix = load_feature_matrix(path, exclude_columns=["N"], require_columns=["N"])
    assert list(matrix.columns) == ["T1", "T2"]
    with pytest.raises(MalformedInputError, match="Missing required"):
        load_feature_matrix(path, require_columns=["Normal"])


def test_missing_cells_become_nan(tmp_path):
    path = _write(tmp_path / "dna.txt", "coords\tN\tT1\nx\t0\t\ny\tNA\t0.3\n")
    matrix = load_feature_matrix(path)
    assert matrix.isna().sum().sum() == 2


def test_non_numeric_value(tmp_path):
    path = _write(tmp_path / "bad.txt", "coords\tN\tT1\nx\t0\tabc\n")
    with pytest.raises(MalformedInputError, match="abc") as excinfo:
        load_feature_matrix(path)
    assert excinfo.value.source == "bad.txt"
    assert str(excinfo.value).startswith("bad.txt: ")


def test_short_row(tmp_path):
    path = _write(tmp_path / "short.txt", "coords\tN\tT1\tT2\nx\t0\t0.1\t0.2\ny\t0\t0.1\n")
    with pytest.raises(MalformedInputError, match="Line 3 has fewer fields") as excinfo:
        load_feature_matrix(path)
    assert excinfo.value.source == "short.txt"


def test_short_row_after_blank_line(tmp_path):
    path = _write(tmp_path / "gap.txt", "coords\tN\tT1\n\nx\t0\t0.1\ny\t0.2\n")
    with pytest.raises(MalformedInputError, match="Line 4"):
        load_feature_matrix(path)


def test_trailing_empty_field_is_not_short(tmp_path):
    path = _write(tmp_path / "dna.txt", "coords\tN\tT1\tT2\nx\t0\t0.1\t\n")
    matrix = load_feature_matrix(path)
    assert matrix.loc["x", "T1"] == pytest.approx(0.1)
    assert matrix["T2"].isna().all()


def test_duplicate_columns(tmp_path):
    path = _write(tmp_path / "dup.txt", "coords\tN\tT1\tT1\nx\t0\t0.1\t0.2\n")
    with pytest.raises(MalformedInputError, match="Duplicate"):
        load_feature_matrix(path)


def test_no_rows(tmp_path):
    path = _write(tmp_path / "empty.txt", "coords\tN\tT1\n")
    with pytest.raises(MalformedInputError):
        load_feature_matrix(path)


def test_empty_file(tmp_path):
    path = _write(tmp_path / "nothing.txt", "")
    with pytest.raises(MalformedInputError):
        load_feature_matrix(path)


def test_malformed_error_is_value_error(tmp_path):
    path = _write(tmp_path / "bad.txt", "coords\tN\tT1\nx\t0\tabc\n")
    with pytest.raises(ValueError):
        load_feature_matrix(path)


def test_find_feature_column():
    assert find_feature_column(["N", "Gene", "T1"]) == "Gene"
    assert find_feature_column(["id", "N", "T1"]) == "id"
    assert find_feature_column(["id", "N"], feature_column="id") == "id"
    with pytest.raises(MalformedInputError):
        find_feature_column(["id", "N"], feature_column="coords")


def test_read_list_file(tmp_path):
    path = _write(tmp_path / "samples.txt", "# cohort\nP1\n\n  P2  \n#P3\n")
    assert read_list_file(path) == ["P1", "P2"]
