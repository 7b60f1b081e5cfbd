import logging
import os
import sys

import pandas as pd
import pytest

from meta_ith.main import main, parse_args


@pytest.fixture(autouse=True)
def reset_root_logging():
    yield
    root = logging.getLogger()
    for handler in [h for h in root.handlers
                    if type(h) in (logging.StreamHandler, logging.FileHandler)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)


def _write_sample(path, shift=0.0):
    df = pd.DataFrame({
        "coords": ["chr1:100", "chr1:200", "chr1:300", "chr2:50"],
        "N": [0.0, 0.0, 0.0, 0.0],
        "T1": [0.2 + shift, 0.1, 0.4, 0.3],
        "T2": [0.4, 0.3 + shift, 0.1, 0.2],
        "T3": [0.1, 0.5, 0.2 + shift, 0.0],
    })
    df.to_csv(path, sep="\t", index=False)


def _cohort_inputs(tmp_path):
    data = tmp_path / "data"
    data.mkdir()
    layer_files = {"DNA": "DNA_{}_frequency_matrix.txt",
                   "RNA": "{}_RNA_expression_matrix.txt",
                   "Immune": "{}_Immune_CIBERSORT_matrix.txt"}
    for layer, template in layer_files.items():
        names = [template.format(sample) for sample in ["P1", "P2"]]
        for i, name in enumerate(names):
            _write_sample(data / name, shift=0.05 * (i + 1) * (1 + len(layer)))
        (data / f"{layer}_files.txt").write_text("\n".join(names) + "\n")
    (data / "samples.txt").write_text("P1\nP2\n")
    return data


def test_parse_args(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["meta-ith", "dendrograms", "--layer", "RNA", "files.txt",
                                      "--workers", "2", "--clamp-negative"])
    args = parse_args()
    assert args.command == "dendrograms"
    assert args.layer == "RNA"
    assert args.list_file == "files.txt"
    assert args.workers == 2
    assert args.clamp_negative
    assert args.output_dir is None


def test_signature_needs_a_gene_set():
    with pytest.raises(SystemExit):
        parse_args(["signature", "z.txt"])


def test_dendrograms_then_divergence(tmp_path, capsys):
    data = _cohort_inputs(tmp_path)
    out = tmp_path / "out"
    for layer in ["DNA", "RNA", "Immune"]:
        code = main(["dendrograms", "--layer", layer, str(data / f"{layer}_files.txt"),
                     "--output-dir", str(out), "--log-level", "WARNING"])
        assert code == 0
    assert os.path.exists(out / "RNA_distance_matrix_P1_RNA_expression_matrix.txt")

    code = main(["divergence", str(data / "samples.txt"), "--output-dir", str(out),
                 "--log-file", "run.log"])
    assert code == 0
    assert os.path.exists(out / "multiomics_ITH_summary.txt")
    assert os.path.exists(out / "multiomics_ITH_comparison.png")
    assert os.path.exists(out / "run.log")
    printed = capsys.readouterr().out
    assert "P1" in printed and "P2" in printed


def test_failure_sets_exit_code(tmp_path, capsys):
    bad = tmp_path / "bad.txt"
    bad.write_text("coords\tN\tT1\tT2\nx\t0\toops\t0.1\n")
    list_file = tmp_path / "files.txt"
    list_file.write_text(f"{bad}\n")
    code = main(["dendrograms", "--layer", "DNA", str(list_file),
                 "--output-dir", str(tmp_path / "out"), "--no-plot"])
    assert code == 1
    assert "FAILED" in capsys.readouterr().out


def test_divergence_without_artifacts(tmp_path):
    samples = tmp_path / "samples.txt"
    samples.write_text("P9\n")
    code = main(["divergence", str(samples), "--output-dir", str(tmp_path / "out"), "--no-plot"])
    assert code == 1


def test_zscores_and_signature(tmp_path):
    expression = tmp_path / "expression.txt"
    expression.write_text("Gene\tA.nr\tB.nr\tT1\tT2\n"
                          "VEGFA\t1\t3\t4\t0\n"
                          "SLC2A1\t2\t4\t3\t3\n"
                          "CDH1\t1\t2\t2\t1\n"
                          "VIM\t5\t6\t4\t7\n")
    out = tmp_path / "out"
    assert main(["zscores", str(expression), "--output-dir", str(out)]) == 0
    z_file = out / "z-scores_matrix.txt"
    assert os.path.exists(z_file)

    assert main(["signature", str(z_file), "--name", "hypoxia", "--output-dir", str(out)]) == 0
    assert os.path.exists(out / "Hypoxia_score.txt")
    assert main(["emt", str(z_file), "--output-dir", str(out)]) == 0
    assert os.path.exists(out / "Mesenchymal-Epithelial_score.txt")


def test_signature_with_no_overlap(tmp_path):
    z_file = tmp_path / "z.txt"
    z_file.write_text("Gene\tT1\nNOT_A_GENE\t1.0\n")
    genes = tmp_path / "genes.txt"
    genes.write_text("Gene\nEGFR\n")
    code = main(["signature", str(z_file), "--gene-set", str(genes),
                 "--output-dir", str(tmp_path / "out")])
    assert code == 1


def test_signature_propagate_missing(tmp_path):
    z_file = tmp_path / "z.txt"
    z_file.write_text("Gene\tT1\tT2\nEGFR\t2.0\t\nMYC\t-1.0\t0.0\n")
    genes = tmp_path / "genes.txt"
    genes.write_text("Gene\nEGFR\nMYC\n")
    out = tmp_path / "out"
    args = ["signature", str(z_file), "--gene-set", str(genes), "--output-dir", str(out)]

    assert main(args) == 0
    scores = pd.read_csv(out / "Geneset_score.txt", sep="\t")
    assert scores.loc[0, "T2"] == pytest.approx(0.0)

    assert main(args + ["--propagate-missing"]) == 0
    scores = pd.read_csv(out / "Geneset_score.txt", sep="\t")
    assert pd.isna(scores.loc[0, "T2"])
    assert scores.loc[0, "T1"] == pytest.approx(0.5)
