from __future__ import annotations

import copy

import numpy as np
import pytest
from numpy.testing import assert_array_equal

import ndmat
from ndmat import Array, ArrayView, Descriptor
from ndmat.errors import (
    EmptyArrayError,
    IncompatibleDtypeError,
    IndexOutOfRangeError,
    InvalidShapeError,
    JaggedLiteralError,
    ShapeMismatchError,
)


def test_explicit_extents_zero_initialized() -> None:
    a = Array((3, 7, 3), dtype="int32")
    assert a.order == 3
    assert a.shape == (3, 7, 3)
    assert a.size == 63
    assert a.dtype == np.dtype("int32")
    assert a.nbytes == 63 * 4
    assert all(x == 0 for x in a)
    assert a.descriptor == Descriptor.from_extents((3, 7, 3))


def test_default_construction_is_order_zero() -> None:
    a = Array()
    assert a.order == 0
    assert a.size == 1
    assert a.at() == 0


@pytest.mark.parametrize("extents", [(0,), (2, 0), (-1, 3)])
def test_invalid_extents(extents: tuple[int, ...]) -> None:
    with pytest.raises(InvalidShapeError):
        Array(extents)


def test_accessors(matrix: Array) -> None:
    assert matrix.order == 2
    assert matrix.extent(0) == 3
    assert matrix.extent(1) == 4
    assert matrix.rows == 3
    assert matrix.columns == 4
    assert matrix.size == 12
    with pytest.raises(IndexOutOfRangeError):
        matrix.extent(2)
    with pytest.raises(IndexOutOfRangeError):
        matrix.extent(-1)


def test_rows_and_columns_of_low_orders() -> None:
    vector = ndmat.array([1, 2, 3])
    assert vector.rows == 3
    assert vector.columns == 1
    scalar = ndmat.array(13)
    assert scalar.rows == 0
    assert scalar.columns == 0


def test_data_is_the_owned_buffer(matrix: Array) -> None:
    data = matrix.data
    assert data.ndim == 1
    assert data.shape == (12,)
    data[5] = 100
    assert matrix.at(1, 1) == 100


def test_from_literal_dtypes() -> None:
    assert ndmat.array([1, 2, 3]).dtype.kind == "i"
    assert ndmat.array([1.0, 2.0]).dtype == np.dtype("float64")
    assert ndmat.array([[1, 2], [3, 4]], dtype="float32").dtype == np.dtype("float32")


def test_from_literal_fills_in_row_major_order(cube: Array) -> None:
    assert list(cube.data) == [
        1, 2, 3, 4, 5, 6, 7, 8, 9,
        10, 11, 12, 13, 14, 17, 16, 17, 18,
        19, 20, 21, 22, 23, 24, 25, 26, 27,
    ]  # fmt: skip


def test_from_literal_rejects_jagged() -> None:
    with pytest.raises(JaggedLiteralError):
        ndmat.array([[1, 2], [3]])


def test_from_literal_with_order() -> None:
    assert ndmat.array([[1, 2]], order=2).shape == (1, 2)
    with pytest.raises(JaggedLiteralError):
        ndmat.array([1, 2], order=2)


def test_from_literal_numpy_array() -> None:
    source = np.arange(6, dtype="int16").reshape(2, 3)
    a = ndmat.array(source)
    assert a.shape == (2, 3)
    assert a.dtype == np.dtype("int16")
    assert_array_equal(a, source)


def test_at_and_set_at(matrix: Array) -> None:
    assert matrix.at(1, 2) == 8
    matrix.set_at(1, 2, 80)
    assert matrix.at(1, 2) == 80
    assert matrix(1, 2) == 80


def test_wrong_number_of_indices(matrix: Array) -> None:
    with pytest.raises(IndexError, match="expected 2, got 1"):
        matrix.at(1)
    with pytest.raises(IndexError, match="expected 2, got 3"):
        matrix.at(1, 1, 1)
    with pytest.raises(IndexError):
        matrix.set_at(1, 5.0)


@pytest.mark.parametrize("indices", [(3, 0), (0, 4), (-1, 0)])
def test_index_out_of_range(matrix: Array, indices: tuple[int, int]) -> None:
    with pytest.raises(IndexOutOfRangeError):
        matrix.at(*indices)
    with pytest.raises(IndexOutOfRangeError):
        matrix.set_at(*indices, 1.0)


def test_index_out_of_range_is_index_error(matrix: Array) -> None:
    with pytest.raises(IndexError):
        matrix.at(3, 0)


def test_non_integer_indices(matrix: Array) -> None:
    with pytest.raises(TypeError):
        matrix.at(1.0, 2)
    assert matrix.at(np.int64(1), np.uint8(2)) == 8


def test_set_at_requires_value() -> None:
    with pytest.raises(TypeError):
        Array((2,)).set_at()


def test_ref_reads_and_writes_through(matrix: Array) -> None:
    r = matrix.ref(2, 3)
    assert isinstance(r, ArrayView)
    assert r.order == 0
    assert r.value == 7
    r.value = 70
    assert matrix.at(2, 3) == 70
    matrix.set_at(2, 3, 71)
    assert r.value == 71
    assert r.at() == 71


def test_value_requires_order_zero(matrix: Array) -> None:
    with pytest.raises(TypeError):
        _ = matrix.value
    with pytest.raises(TypeError):
        matrix.value = 1


def test_subscript(matrix: Array) -> None:
    assert matrix[1, 2] == 8
    assert matrix[1][2] == 8
    row = matrix[2]
    assert isinstance(row, ArrayView)
    assert row.tolist() == [2, 1, 5, 7]
    matrix[0, 0] = 90
    assert matrix.at(0, 0) == 90
    matrix[1][3] = 19
    assert matrix.at(1, 3) == 19


def test_subscript_assigns_into_sub_view(matrix: Array) -> None:
    matrix[1] = 0
    assert matrix.tolist()[1] == [0, 0, 0, 0]
    matrix[2] = [1, 2, 3, 4]
    assert matrix.tolist()[2] == [1, 2, 3, 4]
    with pytest.raises(ShapeMismatchError):
        matrix[0] = [1, 2, 3]
    assert matrix.tolist()[0] == [9, 3, 3, 3]


def test_subscript_rejects_slices(matrix: Array) -> None:
    with pytest.raises(IndexError, match="range slicing"):
        matrix[0:2]
    with pytest.raises(IndexError):
        matrix[..., 1]
    with pytest.raises(IndexError, match="expected 2, got 3"):
        matrix[0, 0, 0]


def test_row_and_column_are_views(matrix: Array) -> None:
    row = matrix.row(1)
    column = matrix.column(2)
    assert isinstance(row, ArrayView)
    assert isinstance(column, ArrayView)
    assert row.shape == (4,)
    assert column.shape == (3,)
    assert row.tolist() == [6, 7, 8, 9]
    assert column.tolist() == [3, 8, 5]
    assert row.buffer is matrix.buffer
    assert column.buffer is matrix.buffer


@pytest.mark.parametrize("method", ["row", "column"])
def test_row_column_out_of_range(matrix: Array, method: str) -> None:
    with pytest.raises(IndexOutOfRangeError):
        getattr(matrix, method)(4)


def test_row_of_order_one_is_element() -> None:
    vector = ndmat.make([1, 2, 3], dtype="int64")
    assert vector.row(1) == 2
    assert not isinstance(vector.row(1), ArrayView)
    with pytest.raises(IndexOutOfRangeError):
        vector.row(3)
    with pytest.raises(IndexOutOfRangeError):
        vector.column(0)


def test_row_of_order_zero_is_value() -> None:
    scalar = ndmat.array(13)
    assert scalar.row() == 13
    assert scalar.row(0) == 13
    with pytest.raises(IndexOutOfRangeError):
        scalar.row(1)


def test_empty_subscript_of_order_zero() -> None:
    scalar = ndmat.array(13)
    assert scalar[()] == 13
    scalar[()] = 14
    assert scalar.value == 14


def test_row_requires_index_above_order_zero(matrix: Array) -> None:
    with pytest.raises(TypeError):
        matrix.row()


def test_from_array_copies(matrix: Array) -> None:
    other = Array.from_array(matrix)
    other.set_at(0, 0, -1)
    assert matrix.at(0, 0) == 9
    assert other.shape == matrix.shape
    assert other.dtype == matrix.dtype


def test_from_array_of_column_is_contiguous(matrix: Array) -> None:
    column = ndmat.from_view(matrix.column(1))
    assert column.descriptor == Descriptor.from_extents((3,))
    assert column.tolist() == [3, 7, 1]


def test_from_array_converts_dtype() -> None:
    ints = ndmat.array([[1, 2], [3, 4]], dtype="int32")
    floats = ndmat.from_array(ints, dtype="float64")
    assert floats.dtype == np.dtype("float64")
    assert floats.tolist() == [[1.0, 2.0], [3.0, 4.0]]


def test_from_array_narrows_float_to_int() -> None:
    floats = ndmat.make([[1.5, 2.5]])
    ints = ndmat.from_array(floats, dtype="int32")
    assert ints.dtype == np.dtype("int32")
    assert ints.tolist() == [[1, 2]]


def test_from_array_rejects_incompatible_dtype() -> None:
    floats = ndmat.array([1.5])
    with ndmat.config.set({"array.casting": "same_kind"}):
        with pytest.raises(IncompatibleDtypeError):
            ndmat.from_array(floats, dtype="int8")
        with pytest.raises(TypeError):
            ndmat.from_array(ndmat.array(["a", "b"]), dtype="float64")


@pytest.mark.parametrize("copier", [Array.copy, copy.copy, copy.deepcopy])
def test_copy_is_deep(matrix: Array, copier: object) -> None:
    other = copier(matrix)  # type: ignore[operator]
    assert isinstance(other, Array)
    assert other.buffer is not matrix.buffer
    other.set_at(0, 0, 0)
    assert matrix.at(0, 0) == 9


def test_move_transfers_buffer(matrix: Array) -> None:
    buffer = matrix.buffer
    row = matrix.row(0)
    moved = matrix.move()
    assert moved.buffer is buffer
    assert moved.at(1, 2) == 8
    assert matrix.is_empty
    assert matrix.order == 2
    assert matrix.size == 0
    assert matrix.dtype == np.dtype("float64")
    # a view taken before the move still addresses the storage
    moved.set_at(0, 1, 30)
    assert row.at(1) == 30


def test_moved_from_array_rejects_access(matrix: Array) -> None:
    matrix.move()
    with pytest.raises(EmptyArrayError):
        matrix.buffer
    with pytest.raises(IndexOutOfRangeError):
        matrix.at(0, 0)
    with pytest.raises(EmptyArrayError):
        matrix.view()
    with pytest.raises(EmptyArrayError, match="Array of order 2 has no buffer"):
        matrix.move()
    with pytest.raises(EmptyArrayError):
        matrix.fill(0)


def test_moved_from_array_iterates_nothing(matrix: Array) -> None:
    matrix.move()
    assert list(matrix) == []
    assert list(matrix.iter_offsets()) == []
    assert matrix.begin() == matrix.end()


def test_release(matrix: Array) -> None:
    matrix.release()
    assert matrix.is_empty
    assert matrix.descriptor == Descriptor.empty(2)


def test_assign_scalar_fills(matrix: Array) -> None:
    assert matrix.assign(4) is matrix
    assert set(matrix) == {4.0}


def test_assign_scalar_to_order_zero() -> None:
    scalar = Array(dtype="int32")
    scalar.assign(6444)
    assert scalar.at() == 6444
    scalar.value = 1
    assert scalar() == 1


def test_assign_array_replaces_wholesale(matrix: Array) -> None:
    old_buffer = matrix.buffer
    source = ndmat.array([[1, 2], [3, 4]], dtype="int32")
    matrix.assign(source)
    assert matrix.shape == (2, 2)
    assert matrix.dtype == np.dtype("float64")
    assert matrix.tolist() == [[1.0, 2.0], [3.0, 4.0]]
    assert matrix.buffer is not old_buffer
    source.set_at(0, 0, 100)
    assert matrix.at(0, 0) == 1


def test_assign_literal(matrix: Array) -> None:
    matrix.assign([[1, 2, 3]])
    assert matrix.shape == (1, 3)
    assert matrix.dtype == np.dtype("float64")


def test_assign_restores_moved_from(matrix: Array) -> None:
    matrix.move()
    matrix.assign([[5, 6]])
    assert not matrix.is_empty
    assert matrix.at(0, 1) == 6


def test_assign_rejects_other_order(matrix: Array) -> None:
    with pytest.raises(ShapeMismatchError):
        matrix.assign(ndmat.array([1, 2, 3]))
    with pytest.raises(JaggedLiteralError):
        matrix.assign([1, 2, 3])
    assert matrix.shape == (3, 4)


def test_resize(matrix: Array) -> None:
    matrix.resize(2, 5)
    assert matrix.shape == (2, 5)
    assert matrix.dtype == np.dtype("float64")
    assert set(matrix) == {0.0}
    matrix.resize((4, 1))
    assert matrix.shape == (4, 1)
    with pytest.raises(ShapeMismatchError):
        matrix.resize(4)


def test_full() -> None:
    a = ndmat.full((2, 3), 7, dtype="int16")
    assert a.dtype == np.dtype("int16")
    assert a.tolist() == [[7, 7, 7], [7, 7, 7]]


def test_full_default_dtype_from_config() -> None:
    assert ndmat.full((2, 2), 1).dtype == np.dtype("float64")
    with ndmat.config.set({"array.dtype": "int16"}):
        a = ndmat.full((2, 2), 3)
    assert a.dtype == np.dtype("int16")
    assert a.tolist() == [[3, 3], [3, 3]]


def test_zeros_accepts_tuple() -> None:
    assert ndmat.zeros((2, 3)).shape == (2, 3)
    assert ndmat.zeros(2, 3).shape == (2, 3)


def test_make_dispatch() -> None:
    assert ndmat.make(2, 2, dtype="int32").shape == (2, 2)
    assert ndmat.make([[1, 2]]).shape == (1, 2)
    assert ndmat.make().order == 0
    with pytest.raises(ShapeMismatchError):
        ndmat.make(2, 2, order=3)


def test_to_numpy(cube: Array) -> None:
    expected = np.array(
        [
            [[1, 2, 3], [4, 5, 6], [7, 8, 9]],
            [[10, 11, 12], [13, 14, 17], [16, 17, 18]],
            [[19, 20, 21], [22, 23, 24], [25, 26, 27]],
        ],
        dtype="float64",
    )
    assert_array_equal(cube.to_numpy(), expected)
    assert_array_equal(np.asarray(cube), expected)
    assert np.asarray(cube, dtype="int64").dtype == np.dtype("int64")
    assert cube.to_numpy().base is None


def test_tolist_order_zero() -> None:
    assert ndmat.array(13).tolist() == 13


def test_iteration_yields_elements(matrix: Array) -> None:
    assert list(matrix) == [9, 3, 3, 3, 6, 7, 8, 9, 2, 1, 5, 7]
    assert list(matrix.iter_indices())[:3] == [(0, 0), (0, 1), (0, 2)]
    assert list(matrix.iter_offsets()) == list(range(12))


def test_begin_end(matrix: Array) -> None:
    cursor = matrix.begin()
    count = 0
    while cursor != matrix.end():
        cursor.advance()
        count += 1
    assert count == matrix.size


def test_repr(matrix: Array) -> None:
    assert repr(matrix) == "<Array shape=(3, 4) dtype=float64>"
    assert repr(matrix.row(0)) == "<ArrayView shape=(4,) dtype=float64>"
