import numpy as np
import pytest

import dataset as ds
import pipeHeader as ph
import pipeIO
from conftest import packPipe, packPipeHeader


def interleaveRows(data):
    # data has shape (components, x, y); every y row is written as all reals, then all i values, etc.
    return np.concatenate([data[c, :, r] for r in range(data.shape[2]) for c in range(data.shape[0])])


def test_complex_1d_eight_samples(complexPipe1d):
    real, imag, fields = complexPipe1d
    kind, grid, header = pipeIO.decodePipe(packPipe(np.concatenate([real, imag]), fields))
    assert kind == 'complex'
    assert grid.shape() == (8, )
    assert np.array_equal(grid.getComponent(0), real)
    assert np.array_equal(grid.getComponent(1), imag)


@pytest.mark.parametrize("byteOrder", ['>', '<'])
def test_real_2d_is_flipped(realPipe2d, byteOrder):
    rows, fields, strings = realPipe2d
    kind, grid, header = pipeIO.decodePipe(packPipe(rows.ravel(), fields, strings, byteOrder))
    assert kind == 'real'
    assert grid.shape() == (4, 3)
    assert np.array_equal(grid.getComponent(0), rows[::-1].T)


def test_real_3d():
    floats = np.arange(24, dtype=np.float32)
    fields = {'FDDIMCOUNT': 3, 'FDSIZE': 4, 'FDSPECNUM': 3, 'FDF3SIZE': 2, 'FDPIPEFLAG': 1,
              'FDF2QUADFLAG': 1, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 1}
    kind, grid, _ = pipeIO.decodePipe(packPipe(floats, fields))
    assert grid.shape() == (4, 3, 2)
    assert np.array_equal(grid.getComponent(0), floats.reshape(2, 3, 4).T[:, ::-1, :])


def test_complex_2d_round_trip():
    data = np.random.default_rng(3).standard_normal((2, 6, 2)).astype(np.float32)
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 3, 'FDSPECNUM': 4, 'FDF2QUADFLAG': 0, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 0}
    kind, grid, _ = pipeIO.decodePipe(packPipe(interleaveRows(data), fields))
    assert kind == 'complex'
    grid.flip(1)
    assert np.array_equal(grid.data, data)


def test_quaternion_2d_round_trip():
    data = np.random.default_rng(4).standard_normal((4, 4, 2)).astype(np.float32)
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 2, 'FDSPECNUM': 8, 'FDF2QUADFLAG': 0, 'FDF1QUADFLAG': 0, 'FDQUADFLAG': 0}
    kind, grid, _ = pipeIO.decodePipe(packPipe(interleaveRows(data), fields))
    assert kind == 'quaternion'
    grid.flip(1)
    assert np.array_equal(grid.data, data)


def test_find_dims_doubles_rows_for_real_records():
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 5, 'FDSPECNUM': 3, 'FDF2QUADFLAG': 1, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 0}
    header = ph.parseHeader(packPipeHeader(fields))
    assert pipeIO.findDims(header) == [5, 6]


def test_find_dims_without_pipe_flag_stays_2d():
    fields = {'FDDIMCOUNT': 3, 'FDSIZE': 5, 'FDSPECNUM': 3, 'FDF3SIZE': 7, 'FDF2QUADFLAG': 1, 'FDQUADFLAG': 1}
    header = ph.parseHeader(packPipeHeader(fields))
    assert pipeIO.findDims(header) == [5, 3]


def test_higher_dim_complex_is_rejected():
    fields = {'FDDIMCOUNT': 3, 'FDSIZE': 2, 'FDSPECNUM': 2, 'FDF3SIZE': 2, 'FDPIPEFLAG': 1,
              'FDF2QUADFLAG': 0, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 0}
    with pytest.raises(ds.HigherDimComplexException):
        pipeIO.decodePipe(packPipe(np.zeros(16), fields))


def test_size_mismatch(complexPipe1d):
    real, imag, fields = complexPipe1d
    with pytest.raises(ds.SizeMismatchException):
        pipeIO.decodePipe(packPipe(np.zeros(15), fields))


def test_file_too_small():
    with pytest.raises(ds.FileTooSmallException):
        pipeIO.decodePipe(b'\x00' * 2047)


def test_misaligned_length(complexPipe1d):
    real, imag, fields = complexPipe1d
    with pytest.raises(ds.MisalignedLengthException):
        pipeIO.decodePipe(packPipe(np.concatenate([real, imag]), fields) + b'\x00\x00')


def test_load_pipe_dataset(realPipe2d, writeFile):
    rows, fields, strings = realPipe2d
    fields = dict(fields, FDYEAR=2024, FDMONTH=5, FDDAY=17, FDSCANS=16)
    path = writeFile('test.ft2', packPipe(rows.ravel(), fields, strings))
    masterData = pipeIO.loadPipe(path)
    assert masterData.kind == 'real'
    assert masterData.shape() == (4, 3)
    assert masterData.source == path
    assert masterData.axes[0].label == '1H'
    assert masterData.axes[0].unit == 'ppm'
    assert masterData.axes[0].sw == 5000.0
    assert masterData.axes[0].spec
    assert masterData.axes[1].label == '13C'
    assert masterData.axes[1].sw == 2000.0
    assert masterData.metaData['title'] == 'test title'
    assert masterData.metaData['username'] == 'someone'
    assert masterData.metaData['dim 1 label'] == '1H'
    assert masterData.metaData['# Scans'] == '16'
    assert masterData.metaData['Date'].startswith('2024-05-17')
    assert 'NMRpipe data loaded from' in masterData.getHistory()


def test_load_missing_pipe(tmp_path):
    with pytest.raises(ds.SourceNotFoundException):
        pipeIO.loadPipe(str(tmp_path / 'missing.ft'))


def test_huge_size_field_is_size_mismatch():
    fields = {'FDDIMCOUNT': 1, 'FDSIZE': 1e30, 'FDF2QUADFLAG': 1}
    with pytest.raises(ds.SizeMismatchException):
        pipeIO.decodePipe(packPipe(np.zeros(4), fields))


def test_negative_extents_are_size_mismatch():
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': -4, 'FDSPECNUM': -1, 'FDF2QUADFLAG': 1, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 1}
    with pytest.raises(ds.SizeMismatchException):
        pipeIO.decodePipe(packPipe(np.zeros(4), fields))


def test_find_dims_transposed():
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 5, 'FDSPECNUM': 3, 'FDF2QUADFLAG': 0, 'FDF1QUADFLAG': 1,
              'FDQUADFLAG': 0, 'FDTRANSPOSED': 1}
    header = ph.parseHeader(packPipeHeader(fields))
    assert header.isTransposed()
    assert pipeIO.findDims(header) == [5, 6]
    notTransposed = ph.parseHeader(packPipeHeader(dict(fields, FDTRANSPOSED=0)))
    assert pipeIO.findDims(notTransposed) == [10, 3]


def test_axis_extras_in_metadata(realPipe2d):
    rows, fields, strings = realPipe2d
    fields = dict(fields, FDF2CAR=4.7, FDF2CENTER=3, FDF2OFFPPM=0.25, FDF2FTSIZE=4, FDF2TDSIZE=2, FDF1CAR=118.0)
    header = ph.parseHeader(packPipe(rows.ravel(), fields, strings))
    metaData = pipeIO.metadataFromHeader(header)
    assert metaData['dim 1 carrier'] == pytest.approx(4.7)
    assert metaData['dim 1 center'] == 3
    assert metaData['dim 1 offppm'] == 0.25
    assert metaData['dim 1 ft size'] == 4
    assert metaData['dim 1 td size'] == 2
    assert metaData['dim 2 carrier'] == 118.0
