import argparse

import pytest

from ps2pipeline.utils.cli_suggestions import SmartParser


@pytest.fixture()
def parser() -> argparse.ArgumentParser:
    p = SmartParser(prog="mycli")
    sub = p.add_subparsers(dest="cmd", required=True)
    # a small set with some near-misses
    for name in ["convert", "compile", "inspect", "pipeline"]:
        sp = sub.add_parser(name)
        sp.set_defaults(cmd=name)
    return p


def test_valid_subcommand_parses(parser):
    args = parser.parse_args(["convert"])
    assert args.cmd == "convert"


def test_invalid_subcommand_suggests_close_match(parser, capsys):
    with pytest.raises(SystemExit) as exc:
        parser.parse_args(["convrt"])
    assert exc.value.code == 2

    err = capsys.readouterr().err
    assert "usage:" in err
    assert "Did you mean:" in err
    assert "convert" in err


def test_invalid_subcommand_without_close_match(parser, capsys):
    with pytest.raises(SystemExit) as exc:
        parser.parse_args(["zzzzzz"])
    assert exc.value.code == 2

    err = capsys.readouterr().err
    assert "usage:" in err
    assert "Did you mean:" not in err


def test_error_message_includes_original_arg(parser, capsys):
    bad = "pipelien"
    with pytest.raises(SystemExit):
        parser.parse_args([bad])
    err = capsys.readouterr().err
    assert bad in err
