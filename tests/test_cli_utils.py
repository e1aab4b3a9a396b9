import sys
import pytest

from pyreaper.cli import utils


def test_parse_trait_list_splits_and_deduplicates() -> None:
    assert utils.parse_trait_list(None) is None
    assert utils.parse_trait_list("") is None
    assert utils.parse_trait_list(" T1 ,T2,,T1 ") == ["T1", "T2"]
    assert utils.parse_trait_list(" , ") is None


def _run_parse_args(argv):
    orig = sys.argv
    try:
        sys.argv = argv
        return utils.parse_args()
    finally:
        sys.argv = orig


def test_parse_args_defaults(tmp_path) -> None:
    args = _run_parse_args(
        [
            "prog",
            "--geno",
            str(tmp_path / "BXD.geno"),
            "--traits",
            str(tmp_path / "traits.txt"),
        ]
    )
    assert args.geno.endswith("BXD.geno")
    assert args.traits.endswith("traits.txt")
    assert args.control is None
    assert args.outputdir == "./QTL_results"
    assert args.n_permutations == 1000
    assert args.n_bootstrap == 1000
    assert args.cpu == 1
    assert args.seed is None
    assert args.quiet is False


def test_parse_args_respects_overrides(tmp_path) -> None:
    args = _run_parse_args(
        [
            "prog",
            "-g",
            str(tmp_path / "g.geno"),
            "-t",
            str(tmp_path / "t.txt"),
            "-c",
            "D1Mit1",
            "-o",
            str(tmp_path / "out"),
            "--n-permutations",
            "500",
            "--n-bootstrap",
            "0",
            "--cpu",
            "4",
            "--seed",
            "7",
            "--select-traits",
            "A,B",
            "--quiet",
        ]
    )
    assert args.control == "D1Mit1"
    assert args.outputdir.endswith("out")
    assert args.n_permutations == 500
    assert args.n_bootstrap == 0
    assert args.cpu == 4
    assert args.seed == 7
    assert utils.parse_trait_list(args.select_traits) == ["A", "B"]
    assert args.quiet is True


def test_parse_args_requires_inputs() -> None:
    with pytest.raises(SystemExit):
        _run_parse_args(["prog", "--geno", "g.geno"])


def test_parse_args_rejects_bad_counts() -> None:
    with pytest.raises(SystemExit):
        _run_parse_args(["prog", "-g", "g", "-t", "t", "--n-permutations", "0"])
    with pytest.raises(SystemExit):
        _run_parse_args(["prog", "-g", "g", "-t", "t", "--n-bootstrap", "-1"])
