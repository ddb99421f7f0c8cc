import json

import numpy as np
import pytest

from biocore.errors import DimensionMismatchError, OutputError
from biocore.outputs import EmptyOutput, TAIL_HEADER, make_output, read_matrix
from conftest import record


def names(*values):
    return [record(value) for value in values]


def test_empty_output_checks_bounds():
    output = make_output(None)
    assert isinstance(output, EmptyOutput)
    output.initialize(names("t0", "t1"), names("q0"))
    output.set(1.0, 0, 1)
    with pytest.raises(DimensionMismatchError):
        output.set(1.0, 1, 0)


def test_unknown_output_type():
    with pytest.raises(OutputError):
        make_output("scores.xyz")


def test_npy_output_writes_header(tmp_path):
    output = make_output(str(tmp_path / "scores.npy"))
    output.initialize(names("t0", "t1", "t2"), names("q0", "q1"))
    output.set_block_origin(1, 0)
    output.set_relative(5.0, 0, 2)
    output.close()

    matrix, targets, queries = read_matrix(tmp_path / "scores.npy")
    assert matrix.shape == (2, 3)
    assert matrix[1, 2] == 5.0
    assert [t.name for t in targets] == ["t0", "t1", "t2"]
    header = json.loads((tmp_path / "scores.json").read_text(encoding="utf-8"))
    assert header["query"] == ["q0", "q1"]


def test_read_matrix_needs_header(tmp_path):
    np.save(tmp_path / "bare.npy", np.zeros((1, 1), dtype=np.float32))
    with pytest.raises(OutputError):
        read_matrix(tmp_path / "bare.npy")


def fill(output, matrix):
    for row, values in enumerate(matrix):
        for col, value in enumerate(values):
            output.set(value, row, col)
    output.close()
    return output.buffer.splitlines()


def test_tail_threshold_sorts_descending():
    output = make_output("buffer.tail[threshold=0.5,atLeast=0]")
    output.initialize(names("a", "b"), names("x", "y"))
    lines = fill(output, [[0.9, 0.1], [0.6, 0.7]])
    assert lines == [TAIL_HEADER, "0.9,a,x", "0.7,b,y", "0.6,a,y"]


def test_tail_keeps_at_least_per_query():
    output = make_output("buffer.tail[threshold=0.95,atLeast=1]")
    output.initialize(names("a", "b"), names("x", "y"))
    lines = fill(output, [[0.9, 0.1], [0.2, 0.3]])
    assert lines == [TAIL_HEADER, "0.9,a,x", "0.3,b,y"]


def test_tail_self_similar_skips_diagonal_and_mirror():
    output = make_output("buffer.tail[selfSimilar,threshold=-1,atLeast=0]")
    output.initialize(names("a", "b", "c"), names("a", "b", "c"))
    lines = fill(output, [[0, 0, -5], [0, 0, -5], [-5, -5, 0]])
    assert lines == [TAIL_HEADER, "0,b,a"]


def test_tail_writes_file(tmp_path):
    output = make_output(str(tmp_path / "best.tail[atLeast=1]"))
    output.initialize(names("a"), names("x"))
    output.set(2.5, 0, 0)
    output.close()
    assert (tmp_path / "best.tail").read_text(encoding="utf-8") == f"{TAIL_HEADER}\n2.5,a,x\n"
