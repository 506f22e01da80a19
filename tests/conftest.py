import itertools
import os
import struct
import sys

import numpy as np
import pytest

# Add src directory to path so we can import modules
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

import pipeHeader as ph


def packPipeHeader(fields=None, strings=None, byteOrder='>'):
    """
    Builds a 2048 byte pipe header.
    fields maps field names to numbers, strings maps field names to text.
    """
    fields = fields or {}
    strings = strings or {}
    words = np.zeros(ph.HEADER_ENTRIES, dtype=np.float32)
    words[ph.FIELDS['FDFLTORDER'][0]] = ph.BYTE_ORDER_SENTINEL
    for name, value in fields.items():
        words[ph.FIELDS[name][0]] = value
    raw = bytearray(words.astype(byteOrder + 'f4').tobytes())
    for name, text in strings.items():
        offset, _, count = ph.FIELDS[name]
        data = text.encode('latin-1')[:4 * count]
        raw[4 * offset:4 * offset + len(data)] = data
    return bytes(raw)


def packPipe(floats, fields=None, strings=None, byteOrder='>'):
    payload = np.asarray(floats, dtype=np.float32).astype(byteOrder + 'f4').tobytes()
    return packPipeHeader(fields, strings, byteOrder) + payload


def packUcsf(stored, tileSizes, atoms=None, version=2, magic=b'UCSF NMR', pad=999.0, owner=b'', comment=b''):
    """
    Builds a UCSF file from data in stored order.
    stored has one dimension per header axis plus a trailing component dimension.
    Unused points in boundary tiles are filled with pad.
    """
    stored = np.asarray(stored, dtype=np.float32)
    points = stored.shape[:-1]
    numComp = stored.shape[-1]
    ndim = len(points)
    if atoms is None:
        atoms = ['1H'] * ndim
    head = bytearray(180)
    head[0:len(magic)] = magic
    head[10:14] = bytes([ndim, numComp, 0, version])
    head[14:14 + len(owner)] = owner
    head[49:49 + len(comment)] = comment
    out = [bytes(head)]
    for i in range(ndim):
        block = bytearray(128)
        atom = atoms[i].encode('latin-1')
        block[0:len(atom)] = atom
        block[8:12] = struct.pack('>i', points[i])
        block[16:20] = struct.pack('>i', tileSizes[i])
        block[20:32] = struct.pack('>fff', 600.0 + i, 5000.0 + i, 4.7 + i)
        out.append(bytes(block))
    counts = [-(-p // t) for p, t in zip(points, tileSizes)]
    for index in itertools.product(*[range(n) for n in counts]):
        tile = np.full(tuple(tileSizes) + (numComp, ), pad, dtype=np.float32)
        origin = [i * t for i, t in zip(index, tileSizes)]
        valid = [min(t, p - o) for t, p, o in zip(tileSizes, points, origin)]
        tile[tuple(slice(0, v) for v in valid)] = stored[tuple(slice(o, o + v) for o, v in zip(origin, valid))]
        out.append(tile.astype('>f4').tobytes())
    return b''.join(out)


@pytest.fixture
def writeFile(tmp_path):
    """Returns a function that writes bytes or text to a file in tmp_path and returns its path."""
    def write(name, content):
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_bytes(content)
        return str(path)
    return write


@pytest.fixture
def complexPipe1d():
    """1D complex pipe data with 8 samples, channel-major."""
    real = np.arange(8, dtype=np.float32)
    imag = -np.arange(8, dtype=np.float32) - 0.5
    fields = {'FDDIMCOUNT': 1, 'FDSIZE': 8, 'FDF2QUADFLAG': 0, 'FDF1QUADFLAG': 1, 'FDQUADFLAG': 0}
    return real, imag, fields


@pytest.fixture
def realPipe2d():
    """2D real pipe data: 4 points along x, 3 rows."""
    rows = np.arange(12, dtype=np.float32).reshape(3, 4)
    fields = {'FDDIMCOUNT': 2, 'FDSIZE': 4, 'FDSPECNUM': 3, 'FDF2QUADFLAG': 1, 'FDF1QUADFLAG': 1,
              'FDQUADFLAG': 1, 'FDF2SW': 5000.0, 'FDF2OBS': 600.13, 'FDF2ORIG': 12.5, 'FDF2UNITS': 3,
              'FDF1SW': 2000.0, 'FDF2FTFLAG': 1}
    strings = {'FDF2LABEL': '1H', 'FDF1LABEL': '13C', 'FDTITLE': 'test title', 'FDUSERNAME': 'someone'}
    return rows, fields, strings


@pytest.fixture
def sparseText():
    return ("# two coordinate columns, two values\n"
            "1 1 1.5 -0.5\n"
            "2 1 2.5 -1.5\n"
            "\n"
            "1 2 3.5 -2.5\n"
            "2 2 4.5 -3.5\n"
            "1 3 5.5 -4.5\n"
            "2 3 6.5 -5.5\n")
