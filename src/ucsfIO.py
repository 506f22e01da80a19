#!/usr/bin/env python3

# Copyright 2024 The nmrGrid developers

# This file is part of nmrGrid.
#
# nmrGrid is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# nmrGrid is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with nmrGrid. If not, see <http://www.gnu.org/licenses/>.

import itertools
import math
import struct
import warnings
import numpy as np
import dataset as ds
import denseGrid as dg
import fileSource as fs

UCSF_MAGIC = 'UCSF NMR'
HEADER_BYTES = 180
AXIS_HEADER_BYTES = 128
DEFAULT_ATOM = '1H'
EXPECTED_VERSION = 2


def cString(raw):
    """Text of a fixed width field up to the first NUL byte"""
    return raw.split(b'\x00')[0].decode('latin-1')


class UcsfAxisHeader(object):

    def __init__(self, atom, points, tileSize, specFreq, specWidth, center):
        if tileSize < 1:
            raise ds.TileSizeException('Bad tile size ' + str(tileSize) + ' for axis ' + atom)
        if points < 1:
            raise ds.SizeMismatchException('Bad point count ' + str(points) + ' for axis ' + atom)
        self.atom = atom
        self.points = points
        self.tileSize = tileSize
        self.tileCount = -(-points // tileSize)
        self.specFreq = specFreq
        self.specWidth = specWidth
        self.center = center


class UcsfHeader(object):

    def __init__(self, dimCount, componentCount, encoding, version, owner='', date='', comment='', axes=None):
        self.dimCount = dimCount
        self.componentCount = componentCount
        self.encoding = encoding
        self.version = version
        self.owner = owner
        self.date = date
        self.comment = comment
        if axes is None:
            axes = []
        self.axes = axes


def parseAxisHeader(raw):
    """
    Parses one 128 byte axis block.

    Parameters
    ----------
    raw : bytes
        The axis block.

    Returns
    -------
    UcsfAxisHeader
        The axis information.
    """
    atom = cString(raw[0:6])
    if not atom:
        atom = DEFAULT_ATOM
    points, = struct.unpack('>i', raw[8:12])
    tileSize, = struct.unpack('>i', raw[16:20])
    specFreq, specWidth, center = struct.unpack('>fff', raw[20:32])
    return UcsfAxisHeader(atom, points, tileSize, specFreq, specWidth, center)


def readUcsfHeader(stream):
    """
    Reads the file header and all axis headers.

    Parameters
    ----------
    stream : file object
        Binary stream positioned at the start of the file.

    Returns
    -------
    UcsfHeader or None
        The header, or None if the file is not a UCSF file.
    """
    raw = fs.readAtMost(stream, HEADER_BYTES)
    if cString(raw[:10]) != UCSF_MAGIC:
        return None
    if len(raw) < HEADER_BYTES:
        raise ds.FileTooSmallException('UCSF header needs ' + str(HEADER_BYTES) + ' bytes, got ' + str(len(raw)))
    dimCount, componentCount, encoding, version = struct.unpack('>BBBB', raw[10:14])
    if version != EXPECTED_VERSION:
        warnings.warn('Unexpected UCSF file version ' + str(version))
    if dimCount < 1 or dimCount > 4:
        raise ds.DimCountException('Unexpected number of dimensions (' + str(dimCount) + ')')
    if componentCount < 1 or componentCount > 8:
        raise ds.ComponentCountException('Unexpected component count ' + str(componentCount))
    header = UcsfHeader(dimCount, componentCount, encoding, version,
                        owner=cString(raw[14:23]), date=cString(raw[23:49]), comment=cString(raw[49:129]))
    for _ in range(dimCount):
        try:
            block = fs.readExact(stream, AXIS_HEADER_BYTES)
        except ds.SizeMismatchException:
            raise ds.FileTooSmallException('File ends inside the axis headers')
        header.axes.append(parseAxisHeader(block))
    return header


def tileOrigins(points, tileSizes):
    """
    Walks the tile grid in storage order, the first axis outermost.

    Parameters
    ----------
    points : sequence of int
        Number of points per stored axis.
    tileSizes : sequence of int
        Tile size per stored axis.

    Yields
    ------
    tuple of int
        The origin of the tile.
    tuple of int
        The number of valid points of the tile along each axis.
    """
    counts = [-(-p // s) for p, s in zip(points, tileSizes)]
    for index in itertools.product(*[range(n) for n in counts]):
        origin = tuple(i * s for i, s in zip(index, tileSizes))
        valid = tuple(min(s, p - o) for s, p, o in zip(tileSizes, points, origin))
        yield origin, valid


def readUcsfTiles(stream, header, dtype=np.float32):
    """
    Reads the tiles and reassembles them into a dense grid.
    Padding points in boundary tiles are read but never written.
    The fastest stored axis becomes axis 0 of the grid and axis 1 is reversed.

    Parameters
    ----------
    stream : file object
        Binary stream positioned after the axis headers.
    header : UcsfHeader
        The parsed header.
    dtype : numpy dtype, optional
        Float type of the grid.

    Returns
    -------
    GridData
        The decoded grid.
    """
    numComp = header.componentCount
    kind = dg.kindFromComponents(numComp)
    points = [ax.points for ax in header.axes]
    tileSizes = [ax.tileSize for ax in header.axes]
    try:
        stored = np.zeros(tuple(points) + (dg.COMPONENTS[kind], ), dtype=dtype)
    except (ValueError, MemoryError):
        raise ds.SizeMismatchException('Header declares ' + str(points) + ' points, too many to hold in memory')
    blockShape = tuple(tileSizes) + (numComp, )
    blockBytes = 4 * numComp * math.prod(tileSizes)
    for origin, valid in tileOrigins(points, tileSizes):
        block = np.frombuffer(fs.readExact(stream, blockBytes), dtype='>f4').reshape(blockShape)
        target = tuple(slice(o, o + v) for o, v in zip(origin, valid)) + (slice(0, numComp), )
        source = tuple(slice(0, v) for v in valid) + (slice(None), )
        stored[target] = block[source]
    ndim = header.dimCount
    data = np.moveaxis(stored, -1, 0).transpose((0, ) + tuple(range(ndim, 0, -1)))
    grid = dg.GridData(np.ascontiguousarray(data), kind)
    if ndim >= 2:
        grid.flip(1)
    return grid


def axesFromHeader(header):
    axes = []
    ndim = header.dimCount
    for pos in range(ndim):
        ax = header.axes[ndim - 1 - pos]
        axes.append(ds.Axis(label=ax.atom, unit='ppm', origin=ax.center, sw=ax.specWidth, freq=ax.specFreq,
                            slot=ndim - 1 - pos, spec=True, points=ax.points, tileSize=ax.tileSize))
    return axes


def metadataFromHeader(header):
    metaData = {'owner': header.owner, 'date': header.date, 'comment': header.comment, 'version': header.version}
    ndim = header.dimCount
    for pos in range(ndim):
        ax = header.axes[ndim - 1 - pos]
        pre = 'dim ' + str(pos + 1) + ' '
        metaData[pre + 'label'] = ax.atom
        metaData[pre + 'spectrometer freq'] = ax.specFreq
        metaData[pre + 'spectral width'] = ax.specWidth
        metaData[pre + 'center'] = ax.center
    return metaData


def decodeUcsf(stream):
    """
    Decodes a UCSF stream.

    Parameters
    ----------
    stream : file object
        Binary stream positioned at the start of the file.

    Returns
    -------
    tuple or None
        (kind, GridData, UcsfHeader), or None when the stream is not UCSF data.
    """
    header = readUcsfHeader(stream)
    if header is None:
        return None
    grid = readUcsfTiles(stream, header)
    return grid.kind, grid, header


def loadUcsf(filePath):
    """
    Loads a UCSF (Sparky) file.

    Parameters
    ----------
    filePath: string
        Path or URI of the file that should be loaded

    Returns
    -------
    NmrDataset or None
        Dataset of the loaded data, None if the file is not a UCSF file
    """
    with fs.openSource(filePath) as f:
        result = decodeUcsf(f)
    if result is None:
        return None
    _, grid, header = result
    masterData = ds.NmrDataset(grid, str(filePath), axesFromHeader(header), metadataFromHeader(header))
    masterData.addHistory("UCSF data loaded from " + str(filePath))
    return masterData
