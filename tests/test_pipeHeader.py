import warnings

import numpy as np
import pytest

import dataset as ds
import pipeHeader as ph
from conftest import packPipeHeader


def test_field_table_has_unique_names_and_valid_offsets():
    names = [name for name, _, _, _ in ph.PIPE_FIELDS]
    assert len(names) == len(set(names))
    for name, offset, kind, count in ph.PIPE_FIELDS:
        assert kind in ('w', 'f', 'n', 's')
        assert 0 <= offset and offset + count <= ph.HEADER_ENTRIES


def test_well_known_offsets():
    assert ph.FIELDS['FDMAGIC'][0] == 0
    assert ph.FIELDS['FDFLTORDER'][0] == 2
    assert ph.FIELDS['FDDIMCOUNT'][0] == 9
    assert ph.FIELDS['FDSIZE'][0] == 99
    assert ph.FIELDS['FDSPECNUM'][0] == 219
    assert ph.FIELDS['FDTRANSPOSED'][0] == 221


@pytest.mark.parametrize("byteOrder", ['>', '<'])
def test_byte_order_round_trip(byteOrder):
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 128, 'FDSPECNUM': 64, 'FDF2SW': 12345.5, 'FDF2OBS': 600.25}
    header = ph.parseHeader(packPipeHeader(fields, {'FDTITLE': 'byte order'}, byteOrder))
    assert header.byteOrder == byteOrder
    assert header.swapped == (byteOrder == '<')
    assert header.getField('FDSIZE') == 128
    assert header.getField('FDSPECNUM') == 64
    assert header.getFloat('FDF2SW') == pytest.approx(12345.5)
    assert header.getFloat('FDF2OBS') == pytest.approx(600.25)
    assert header.getField('FDTITLE') == 'byte order'
    assert header.dimCount() == 2


def test_both_byte_orders_give_same_values():
    fields = {'FDDIMCOUNT': 3, 'FDSIZE': 7, 'FDF3SIZE': 5, 'FDF1SW': -3.25}
    big = ph.parseHeader(packPipeHeader(fields, byteOrder='>'))
    little = ph.parseHeader(packPipeHeader(fields, byteOrder='<'))
    assert big.getAll() == little.getAll()


def test_nan_sentinel_is_rejected():
    raw = bytearray(packPipeHeader())
    raw[8:12] = np.array([np.nan], dtype='>f4').tobytes()
    with pytest.raises(ds.ByteOrderException):
        ph.parseHeader(bytes(raw))


def test_non_zero_magic_is_rejected():
    raw = packPipeHeader({'FDMAGIC': 1.0})
    with pytest.raises(ds.BadMagicException):
        ph.parseHeader(raw)


def test_short_header_is_rejected():
    with pytest.raises(ds.FileTooSmallException):
        ph.parseHeader(packPipeHeader()[:100])


@pytest.mark.parametrize("num", [0, 5])
def test_bad_dim_count(num):
    header = ph.parseHeader(packPipeHeader({'FDDIMCOUNT': num}))
    with pytest.raises(ds.DimCountException):
        header.dimCount()


def test_default_dim_order_maps_axis_one_to_f2():
    header = ph.parseHeader(packPipeHeader({'FDF2SW': 100.0, 'FDF1SW': 200.0}))
    assert header.dimOrder == ph.DEFAULT_DIM_ORDER
    assert header.axisPhysicalSlot(1) == 2
    assert header.axisSweepWidth(1) == 100.0
    assert header.axisSweepWidth(2) == 200.0


def test_explicit_dim_order_is_used():
    fields = {'FDDIMORDER1': 1, 'FDDIMORDER2': 2, 'FDDIMORDER3': 3, 'FDDIMORDER4': 4, 'FDF2SW': 100.0, 'FDF1SW': 200.0}
    header = ph.parseHeader(packPipeHeader(fields))
    assert header.axisSweepWidth(1) == 200.0
    assert header.axisSweepWidth(2) == 100.0


def test_bad_dim_order_warns_and_falls_back():
    fields = {'FDDIMORDER1': 2, 'FDDIMORDER2': 2, 'FDDIMORDER3': 3, 'FDDIMORDER4': 4}
    with pytest.warns(UserWarning):
        header = ph.parseHeader(packPipeHeader(fields))
    assert header.dimOrder == ph.DEFAULT_DIM_ORDER


def test_zero_dim_order_does_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        ph.parseHeader(packPipeHeader())


def test_axis_accessors():
    fields = {'FDF2UNITS': 3, 'FDF2QUADFLAG': 1, 'FDF1QUADFLAG': 0, 'FDF2FTFLAG': 1, 'FDSIZE': 10, 'FDSPECNUM': 20}
    header = ph.parseHeader(packPipeHeader(fields, {'FDF2LABEL': 'H1', 'FDF1LABEL': 'N15'}))
    assert header.axisLabel(1) == 'H1'
    assert header.axisLabel(2) == 'N15'
    assert header.axisUnit(1) == 'ppm'
    assert header.axisUnit(2) == 'none'
    assert header.axisQuadFlag(1)
    assert not header.axisQuadFlag(2)
    assert header.axisFtFlag(1)
    assert header.axisSize(1) == 10
    assert header.axisSize(2) == 20
    with pytest.raises(IndexError):
        header.axisPhysicalSlot(5)


def test_unknown_unit_warns():
    header = ph.parseHeader(packPipeHeader({'FDF2UNITS': 42}))
    with pytest.warns(UserWarning):
        assert header.axisUnit(1) == 'none'


def test_packed_string_stops_at_nul_and_width():
    header = ph.parseHeader(packPipeHeader(strings={'FDF2LABEL': 'ABCDEFGHIJ'}))
    assert header.getField('FDF2LABEL') == 'ABCDEFGH'


def test_truncate():
    assert ph.truncate(3.9) == 3
    assert ph.truncate(-3.9) == -3
    assert ph.truncate(float('nan')) == 0
    assert ph.truncate(float('inf')) == 0
