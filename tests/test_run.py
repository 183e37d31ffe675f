import pytest

import run
from dropfour.utils import CELLS


def test_parser_defaults():
    args = run.build_parser().parse_args(["play"])
    assert args.command == "play"
    assert args.difficulty == "medium"

    args = run.build_parser().parse_args(["online", "join", "k7qx", "--name", "BOB"])
    assert (args.action, args.code, args.name) == ("join", "k7qx", "BOB")


def test_unknown_difficulty_is_rejected():
    with pytest.raises(SystemExit):
        run.build_parser().parse_args(["play", "--difficulty", "impossible"])


def test_no_command_prints_help(capsys):
    assert run.main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_join_needs_a_code(capsys):
    assert run.main(["online", "join"]) == 1
    assert "room code is required" in capsys.readouterr().out


def test_inspect(capsys):
    values = ["0"] * CELLS
    for index in (38, 31, 24, 17):
        values[index] = "1"
    assert run.main(["inspect", "--position", ",".join(values)]) == 0
    out = capsys.readouterr().out
    assert "Pieces: 4" in out
    assert "Win for ONE" in out


def test_inspect_bad_position(capsys):
    run.main(["inspect", "--position", "1,2,3"])
    assert "Error parsing position" in capsys.readouterr().out


def test_benchmark(capsys):
    assert run.main(["benchmark", "--difficulty", "easy", "--iterations", "2", "--seed", "1"]) == 0
    assert "easy: 2 searches" in capsys.readouterr().out
