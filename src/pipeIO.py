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

import math
import numpy as np
import dataset as ds
import denseGrid as dg
import fileSource as fs
import pipeHeader as ph

DATA_TYPES = {1: 'real', 2: 'complex', 4: 'quaternion'}


def findDataType(header):
    """
    Derives the element kind from the quadrature flags of the first two axes.

    Parameters
    ----------
    header : PipeHeader
        The parsed header.

    Returns
    -------
    str
        'real', 'complex', 'quaternion' or 'point'.
    int
        The number of components per sample.
    """
    dimCount = header.dimCount()
    numComponents = 1 if header.axisQuadFlag(1) else 2
    if dimCount >= 2:
        numComponents *= 1 if header.axisQuadFlag(2) else 2
    return DATA_TYPES.get(numComponents, 'point'), numComponents


def findDims(header):
    """
    Computes the raw extents of the float payload.
    The extents count interleaved floats, not samples.

    Parameters
    ----------
    header : PipeHeader
        The parsed header.

    Returns
    -------
    list of int
        Raw size per axis, x first.
    """
    dimCount = header.dimCount()
    size = header.getField('FDSIZE')
    if dimCount == 1:
        floatsPerRecord = 1 if header.axisQuadFlag(1) else 2
        return [size * floatsPerRecord]
    if header.axisQuadFlag(2) and header.isTransposed():
        floatsPerRecord = 1
    elif header.axisQuadFlag(1) and header.getFloat('FDTRANSPOSED') == 0:
        floatsPerRecord = 1
    else:
        floatsPerRecord = 2
    xDim = size * floatsPerRecord
    yDim = header.getField('FDSPECNUM')
    if header.getFloat('FDQUADFLAG') == 0 and floatsPerRecord == 1:
        yDim *= 2
    pipeFlag = header.getFloat('FDPIPEFLAG') != 0
    if dimCount == 3 and pipeFlag:
        return [xDim, yDim, header.getField('FDF3SIZE')]
    if dimCount == 4 and pipeFlag:
        return [xDim, yDim, header.getField('FDF3SIZE'), header.getField('FDF4SIZE')]
    return [xDim, yDim]


def deinterleave(floats, rawDims, numComponents):
    """
    Splits channel-major rows into components.
    Every row along the second axis holds all real values of that row, then all i values, then j and k.

    Parameters
    ----------
    floats : ndarray
        The payload.
    rawDims : list of int
        Raw extents (1 or 2 axes).
    numComponents : int
        2 for complex, 4 for quaternion.

    Returns
    -------
    ndarray
        Component-major data of shape (numComponents,) + dims.
    """
    dims = list(rawDims)
    countAxis = 0 if len(dims) == 1 else 1
    if dims[countAxis] % numComponents != 0:
        raise ds.SizeMismatchException('Axis size ' + str(dims[countAxis]) + ' cannot hold ' + str(numComponents) + ' components per sample')
    dims[countAxis] //= numComponents
    if len(dims) == 1:
        rows, rowLen = 1, dims[0]
    else:
        rows, rowLen = dims[1], dims[0]
    block = floats.reshape(rows, numComponents, rowLen)
    data = block.transpose(1, 2, 0)
    return np.ascontiguousarray(data.reshape((numComponents, ) + tuple(dims)))


def assemble(header, floats):
    """
    Builds the dense grid from the header facts and the float payload.

    Parameters
    ----------
    header : PipeHeader
        The parsed header.
    floats : array_like
        All floats after the header, in native byte order.

    Returns
    -------
    str
        The element kind.
    GridData
        The grid, flipped along the second axis.
    """
    floats = np.asarray(floats, dtype=np.float32)
    kind, numComponents = findDataType(header)
    if kind == 'point':
        raise ds.PointFormatException('Not yet supporting ' + str(numComponents) + ' component point data')
    rawDims = findDims(header)
    if numComponents > 1 and len(rawDims) > 2:
        raise ds.HigherDimComplexException(kind + ' ' + str(len(rawDims)) + 'D pipe data is not implemented')
    if min(rawDims) < 1:
        raise ds.SizeMismatchException('Header declares an empty or negative extent ' + str(rawDims))
    expected = math.prod(rawDims)
    if expected != len(floats):
        raise ds.SizeMismatchException('Header expects ' + str(expected) + ' floats ' + str(rawDims) + ', file holds ' + str(len(floats)))
    if numComponents == 1:
        data = floats.reshape(rawDims[::-1]).transpose()[np.newaxis]
    else:
        data = deinterleave(floats, rawDims, numComponents)
    grid = dg.GridData(np.ascontiguousarray(data), kind)
    if grid.ndim() >= 2:
        grid.flip(1)
    return kind, grid


def axesFromHeader(header, grid):
    axes = []
    for i in range(grid.ndim()):
        axis = i + 1
        axes.append(ds.Axis(label=header.axisLabel(axis),
                            unit=header.axisUnit(axis),
                            origin=header.axisOrigin(axis),
                            sw=header.axisSweepWidth(axis),
                            freq=header.axisObsFreq(axis),
                            quadrature=header.axisQuadFlag(axis),
                            slot=header.axisPhysicalSlot(axis),
                            spec=header.axisFtFlag(axis),
                            points=grid.shape()[i]))
    return axes


def metadataFromHeader(header):
    metaData = {'username': header.getField('FDUSERNAME'),
                'operator': header.getField('FDOPERNAME'),
                'source': header.getField('FDSRCNAME'),
                'title': header.getField('FDTITLE'),
                'comment': header.getField('FDCOMMENT')}
    for axis in range(1, 5):
        metaData['dim ' + str(axis) + ' label'] = header.axisLabel(axis)
    for axis in range(1, header.dimCount() + 1):
        pre = 'dim ' + str(axis) + ' '
        metaData[pre + 'sw'] = header.axisSweepWidth(axis)
        metaData[pre + 'obs'] = header.axisObsFreq(axis)
        metaData[pre + 'origin'] = header.axisOrigin(axis)
        metaData[pre + 'unit'] = header.axisUnit(axis)
        metaData[pre + 'carrier'] = header.axisCarrier(axis)
        metaData[pre + 'center'] = header.axisCenter(axis)
        metaData[pre + 'offppm'] = header.axisOffPpm(axis)
        metaData[pre + 'ft size'] = header.axisFtSize(axis)
        metaData[pre + 'td size'] = header.axisTdSize(axis)
    if header.getField('FDSCANS') > 0:
        metaData['# Scans'] = str(header.getField('FDSCANS'))
    if header.getField('FDTEMPERATURE') != 0:
        metaData['Temperature'] = header.getField('FDTEMPERATURE')
    year = header.getField('FDYEAR')
    if year > 0:
        metaData['Date'] = '%04d-%02d-%02d %02d:%02d:%02d' % (year, header.getField('FDMONTH'), header.getField('FDDAY'),
                                                              header.getField('FDHOURS'), header.getField('FDMINS'), header.getField('FDSECS'))
    return metaData


def decodePipe(rawBytes):
    """
    Decodes the complete content of a pipe file.

    Parameters
    ----------
    rawBytes : bytes
        The file content.

    Returns
    -------
    str
        The element kind.
    GridData
        The decoded grid.
    PipeHeader
        The parsed header.
    """
    if len(rawBytes) < ph.HEADER_BYTES:
        raise ds.FileTooSmallException('File is too small to contain pipe data: ' + str(len(rawBytes)) + ' bytes')
    if (len(rawBytes) - ph.HEADER_BYTES) % 4 != 0:
        raise ds.MisalignedLengthException('File cannot be evenly divided into floats')
    header = ph.parseHeader(rawBytes)
    floats = np.frombuffer(rawBytes, dtype=header.byteOrder + 'f4', offset=ph.HEADER_BYTES).astype(np.float32)
    kind, grid = assemble(header, floats)
    return kind, grid, header


def loadPipe(filePath):
    """
    Loads a NMRpipe file.

    Parameters
    ----------
    filePath: string
        Path or URI of the file that should be loaded

    Returns
    -------
    NmrDataset
        Dataset of the loaded data
    """
    rawBytes = fs.readAll(filePath)
    _, grid, header = decodePipe(rawBytes)
    masterData = ds.NmrDataset(grid, str(filePath), axesFromHeader(header, grid), metadataFromHeader(header))
    masterData.addHistory("NMRpipe data loaded from " + str(filePath))
    return masterData
