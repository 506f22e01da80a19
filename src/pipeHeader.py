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

import warnings
import numpy as np
import dataset as ds

HEADER_ENTRIES = 512
HEADER_BYTES = HEADER_ENTRIES * 4
BYTE_ORDER_SENTINEL = 2.345
BYTE_ORDER_TOLERANCE = 1e-6
DEFAULT_DIM_ORDER = (2, 1, 3, 4)
UNIT_CODES = {0: 'none', 1: 's', 2: 'Hz', 3: 'ppm', 4: 'pts'}
SIZE_FIELDS = {1: 'FDSPECNUM', 2: 'FDSIZE', 3: 'FDF3SIZE', 4: 'FDF4SIZE'}

# (name, word offset, kind, word count)
# kind: 'w' raw 32 bit word, 'f' float, 'n' float truncated to int, 's' packed ASCII
PIPE_FIELDS = [
    ('FDMAGIC', 0, 'w', 1),
    ('FDFLTFORMAT', 1, 'f', 1),
    ('FDFLTORDER', 2, 'f', 1),
    ('FDDIMCOUNT', 9, 'n', 1),
    ('FDF3OBS', 10, 'f', 1),
    ('FDF3SW', 11, 'f', 1),
    ('FDF3ORIG', 12, 'f', 1),
    ('FDF3FTFLAG', 13, 'n', 1),
    ('FDPLANELOC', 14, 'f', 1),
    ('FDF3SIZE', 15, 'n', 1),
    ('FDF2LABEL', 16, 's', 2),
    ('FDF1LABEL', 18, 's', 2),
    ('FDF3LABEL', 20, 's', 2),
    ('FDF4LABEL', 22, 's', 2),
    ('FDDIMORDER1', 24, 'n', 1),
    ('FDDIMORDER2', 25, 'n', 1),
    ('FDDIMORDER3', 26, 'n', 1),
    ('FDDIMORDER4', 27, 'n', 1),
    ('FDF4OBS', 28, 'f', 1),
    ('FDF4SW', 29, 'f', 1),
    ('FDF4ORIG', 30, 'f', 1),
    ('FDF4FTFLAG', 31, 'n', 1),
    ('FDF4SIZE', 32, 'n', 1),
    ('FDDMXVAL', 40, 'f', 1),
    ('FDDMXFLAG', 41, 'n', 1),
    ('FDDELTATR', 42, 'f', 1),
    ('FDNUSDIM', 45, 'n', 1),
    ('FDF3APOD', 50, 'f', 1),
    ('FDF3QUADFLAG', 51, 'n', 1),
    ('FDF4APOD', 53, 'f', 1),
    ('FDF4QUADFLAG', 54, 'n', 1),
    ('FDF1QUADFLAG', 55, 'n', 1),
    ('FDF2QUADFLAG', 56, 'n', 1),
    ('FDPIPEFLAG', 57, 'n', 1),
    ('FDF3UNITS', 58, 'n', 1),
    ('FDF4UNITS', 59, 'n', 1),
    ('FDF3P0', 60, 'f', 1),
    ('FDF3P1', 61, 'f', 1),
    ('FDF4P0', 62, 'f', 1),
    ('FDF4P1', 63, 'f', 1),
    ('FDF2AQSIGN', 64, 'n', 1),
    ('FDPARTITION', 65, 'f', 1),
    ('FDF2CAR', 66, 'f', 1),
    ('FDF1CAR', 67, 'f', 1),
    ('FDF3CAR', 68, 'f', 1),
    ('FDF4CAR', 69, 'f', 1),
    ('FDUSER1', 70, 'f', 1),
    ('FDUSER2', 71, 'f', 1),
    ('FDUSER3', 72, 'f', 1),
    ('FDUSER4', 73, 'f', 1),
    ('FDUSER5', 74, 'f', 1),
    ('FDPIPECOUNT', 75, 'n', 1),
    ('FDUSER6', 76, 'f', 1),
    ('FDFIRSTPLANE', 77, 'n', 1),
    ('FDLASTPLANE', 78, 'n', 1),
    ('FDF2CENTER', 79, 'n', 1),
    ('FDF1CENTER', 80, 'n', 1),
    ('FDF3CENTER', 81, 'n', 1),
    ('FDF4CENTER', 82, 'n', 1),
    ('FDF2APOD', 95, 'f', 1),
    ('FDF2FTSIZE', 96, 'n', 1),
    ('FDREALSIZE', 97, 'n', 1),
    ('FDF1FTSIZE', 98, 'n', 1),
    ('FDSIZE', 99, 'n', 1),
    ('FDF2SW', 100, 'f', 1),
    ('FDF2ORIG', 101, 'f', 1),
    ('FDQUADFLAG', 106, 'n', 1),
    ('FDF2ZF', 108, 'f', 1),
    ('FDF2P0', 109, 'f', 1),
    ('FDF2P1', 110, 'f', 1),
    ('FDF2LB', 111, 'f', 1),
    ('FDF2OBS', 119, 'f', 1),
    ('FDMCFLAG', 135, 'n', 1),
    ('FDF2UNITS', 152, 'n', 1),
    ('FDNOISE', 153, 'f', 1),
    ('FDTEMPERATURE', 157, 'f', 1),
    ('FDPRESSURE', 158, 'f', 1),
    ('FDRANK', 180, 'f', 1),
    ('FDTAU', 199, 'f', 1),
    ('FDF3FTSIZE', 200, 'n', 1),
    ('FDF4FTSIZE', 201, 'n', 1),
    ('FDF1OBS', 218, 'f', 1),
    ('FDSPECNUM', 219, 'n', 1),
    ('FDF2FTFLAG', 220, 'n', 1),
    ('FDTRANSPOSED', 221, 'n', 1),
    ('FDF1FTFLAG', 222, 'n', 1),
    ('FDF1SW', 229, 'f', 1),
    ('FDF1UNITS', 234, 'n', 1),
    ('FDF1LB', 243, 'f', 1),
    ('FDF1P0', 245, 'f', 1),
    ('FDF1P1', 246, 'f', 1),
    ('FDMAX', 247, 'f', 1),
    ('FDMIN', 248, 'f', 1),
    ('FDF1ORIG', 249, 'f', 1),
    ('FDSCALEFLAG', 250, 'n', 1),
    ('FDDISPMAX', 251, 'f', 1),
    ('FDDISPMIN', 252, 'f', 1),
    ('FDPTHRESH', 253, 'f', 1),
    ('FDNTHRESH', 254, 'f', 1),
    ('FD2DPHASE', 256, 'n', 1),
    ('FDF2X1', 257, 'n', 1),
    ('FDF2XN', 258, 'n', 1),
    ('FDF1X1', 259, 'n', 1),
    ('FDF1XN', 260, 'n', 1),
    ('FDF3X1', 261, 'n', 1),
    ('FDF3XN', 262, 'n', 1),
    ('FDF4X1', 263, 'n', 1),
    ('FDF4XN', 264, 'n', 1),
    ('FDDOMINFO', 266, 'n', 1),
    ('FDMETHINFO', 267, 'n', 1),
    ('FDHOURS', 283, 'n', 1),
    ('FDMINS', 284, 'n', 1),
    ('FDSECS', 285, 'n', 1),
    ('FDSRCNAME', 286, 's', 4),
    ('FDUSERNAME', 290, 's', 4),
    ('FDMONTH', 294, 'n', 1),
    ('FDDAY', 295, 'n', 1),
    ('FDYEAR', 296, 'n', 1),
    ('FDTITLE', 297, 's', 15),
    ('FDCOMMENT', 312, 's', 40),
    ('FDLASTBLOCK', 359, 'n', 1),
    ('FDCONTBLOCK', 360, 'n', 1),
    ('FDBASEBLOCK', 361, 'n', 1),
    ('FDPEAKBLOCK', 362, 'n', 1),
    ('FDBMAPBLOCK', 363, 'n', 1),
    ('FDHISTBLOCK', 364, 'n', 1),
    ('FD1DBLOCK', 365, 'n', 1),
    ('FDSCORE', 370, 'f', 1),
    ('FDSCANS', 371, 'n', 1),
    ('FDF3LB', 372, 'f', 1),
    ('FDF4LB', 373, 'f', 1),
    ('FDF2GB', 374, 'f', 1),
    ('FDF1GB', 375, 'f', 1),
    ('FDF3GB', 376, 'f', 1),
    ('FDF4GB', 377, 'f', 1),
    ('FDF2OBSMID', 378, 'f', 1),
    ('FDF1OBSMID', 379, 'f', 1),
    ('FDF3OBSMID', 380, 'f', 1),
    ('FDF4OBSMID', 381, 'f', 1),
    ('FDF2GOFF', 382, 'f', 1),
    ('FDF1GOFF', 383, 'f', 1),
    ('FDF3GOFF', 384, 'f', 1),
    ('FDF4GOFF', 385, 'f', 1),
    ('FDF2TDSIZE', 386, 'n', 1),
    ('FDF1TDSIZE', 387, 'n', 1),
    ('FDF3TDSIZE', 388, 'n', 1),
    ('FDF4TDSIZE', 389, 'n', 1),
    ('FD2DVIRGIN', 399, 'n', 1),
    ('FDF3APODCODE', 400, 'n', 1),
    ('FDF3APODQ1', 401, 'f', 1),
    ('FDF3APODQ2', 402, 'f', 1),
    ('FDF3APODQ3', 403, 'f', 1),
    ('FDF3C1', 404, 'f', 1),
    ('FDF4APODCODE', 405, 'n', 1),
    ('FDF4APODQ1', 406, 'f', 1),
    ('FDF4APODQ2', 407, 'f', 1),
    ('FDF4APODQ3', 408, 'f', 1),
    ('FDF4C1', 409, 'f', 1),
    ('FDF2APODCODE', 413, 'n', 1),
    ('FDF1APODCODE', 414, 'n', 1),
    ('FDF2APODQ1', 415, 'f', 1),
    ('FDF2APODQ2', 416, 'f', 1),
    ('FDF2APODQ3', 417, 'f', 1),
    ('FDF2C1', 418, 'f', 1),
    ('FDF2APODDF', 419, 'f', 1),
    ('FDF1APODQ1', 420, 'f', 1),
    ('FDF1APODQ2', 421, 'f', 1),
    ('FDF1APODQ3', 422, 'f', 1),
    ('FDF1C1', 423, 'f', 1),
    ('FDF1APOD', 428, 'f', 1),
    ('FDF1ZF', 437, 'f', 1),
    ('FDF3ZF', 438, 'f', 1),
    ('FDF4ZF', 439, 'f', 1),
    ('FDFILECOUNT', 442, 'n', 1),
    ('FDSLICECOUNT0', 443, 'n', 1),
    ('FDTHREADCOUNT', 444, 'n', 1),
    ('FDTHREADID', 445, 'n', 1),
    ('FDSLICECOUNT1', 446, 'n', 1),
    ('FDCUBEFLAG', 447, 'n', 1),
    ('FDOPERNAME', 464, 's', 8),
    ('FDF1AQSIGN', 475, 'n', 1),
    ('FDF3AQSIGN', 476, 'n', 1),
    ('FDF4AQSIGN', 477, 'n', 1),
    ('FDF2OFFPPM', 480, 'f', 1),
    ('FDF1OFFPPM', 481, 'f', 1),
    ('FDF3OFFPPM', 482, 'f', 1),
    ('FDF4OFFPPM', 483, 'f', 1),
]

FIELDS = dict((name, (offset, kind, count)) for name, offset, kind, count in PIPE_FIELDS)


def truncate(value):
    """Converts a header float to an int the way a C cast does, non-finite values become 0"""
    if not np.isfinite(value):
        return 0
    return int(value)


def detectByteOrder(rawBytes):
    """
    Finds the byte order of a pipe header from the FDFLTORDER sentinel.

    Parameters
    ----------
    rawBytes : bytes
        At least the first 12 bytes of the file.

    Returns
    -------
    str
        '>' for big endian, '<' for little endian.

    Raises
    ------
    ByteOrderException
        When the sentinel decodes to NaN.
    """
    probe = np.frombuffer(rawBytes, dtype='>f4', count=3, offset=0)[2]
    if np.isnan(probe):
        raise ds.ByteOrderException('Weird value present for FDFLTORDER, not a pipe file')
    if abs(probe - np.float32(BYTE_ORDER_SENTINEL)) > BYTE_ORDER_TOLERANCE:
        return '<'
    return '>'


def parseHeader(rawBytes):
    """
    Parses the first 2048 bytes of a pipe file.

    Parameters
    ----------
    rawBytes : bytes
        The file content, at least 2048 bytes.

    Returns
    -------
    PipeHeader
        The parsed header.
    """
    return PipeHeader(rawBytes)


class PipeHeader(object):
    """
    Read-only view over the 512 header words of a pipe file.
    Per-axis accessors take a logical axis number (1 to 4) and resolve the physical field group through the dimension order words.
    """

    def __init__(self, rawBytes):
        if len(rawBytes) < HEADER_BYTES:
            raise ds.FileTooSmallException('Header needs ' + str(HEADER_BYTES) + ' bytes, got ' + str(len(rawBytes)))
        self.raw = bytes(rawBytes[:HEADER_BYTES])
        self.byteOrder = detectByteOrder(self.raw)
        self.swapped = self.byteOrder == '<'
        self.ints = np.frombuffer(self.raw, dtype=self.byteOrder + 'i4')
        self.floats = np.frombuffer(self.raw, dtype=self.byteOrder + 'f4')
        if self.ints[0] != 0:
            raise ds.BadMagicException('This does not appear to be a pipe file: FDMAGIC is ' + str(self.ints[0]))
        self.dimOrder = self.readDimOrder()

    def readDimOrder(self):
        order = tuple(truncate(self.getFloat('FDDIMORDER' + str(i))) for i in range(1, 5))
        if sorted(order) == [1, 2, 3, 4]:
            return order
        if any(order):
            warnings.warn('Unusual dimension order ' + str(order) + ', using ' + str(DEFAULT_DIM_ORDER))
        return DEFAULT_DIM_ORDER

    def fieldOffset(self, field):
        if isinstance(field, str):
            field = FIELDS[field][0]
        if not 0 <= field < HEADER_ENTRIES:
            raise IndexError('Header offset out of range: ' + str(field))
        return field

    def getInt(self, field):
        return int(self.ints[self.fieldOffset(field)])

    def getFloat(self, field):
        return float(self.floats[self.fieldOffset(field)])

    def getCount(self, field):
        return truncate(self.getFloat(field))

    def getPackedString(self, field, wordCount=None):
        """
        Decodes text packed four characters per word.

        Parameters
        ----------
        field : str or int
            Field name or word offset.
        wordCount : int, optional
            Number of words to decode.
            By default the width from the field table is used.

        Returns
        -------
        str
            The text up to the first NUL byte.
        """
        if wordCount is None:
            wordCount = FIELDS[field][2]
        start = self.fieldOffset(field) * 4
        chars = self.raw[start:min(start + 4 * wordCount, HEADER_BYTES)]
        return chars.split(b'\x00')[0].decode('latin-1')

    def getField(self, name):
        """
        Returns a named header value decoded according to the field table.

        Parameters
        ----------
        name : str
            The field name, for example 'FDSIZE'.

        Returns
        -------
        int, float or str
            The decoded value.
        """
        offset, kind, count = FIELDS[name]
        if kind == 'w':
            return self.getInt(offset)
        if kind == 'n':
            return self.getCount(offset)
        if kind == 's':
            return self.getPackedString(offset, count)
        return self.getFloat(offset)

    def getAll(self):
        return dict((name, self.getField(name)) for name, _, _, _ in PIPE_FIELDS)

    def dimCount(self):
        num = self.getCount('FDDIMCOUNT')
        if num < 1 or num > 4:
            raise ds.DimCountException('Dim count looks crazy: ' + str(num))
        return num

    def axisPhysicalSlot(self, axis):
        """
        Finds which header field group (F1 to F4) holds a logical axis.

        Parameters
        ----------
        axis : int
            Logical axis, 1 to 4.

        Returns
        -------
        int
            The physical slot, 1 to 4.
        """
        if not 1 <= axis <= 4:
            raise IndexError('Logical axis should be between 1 and 4, got ' + str(axis))
        return self.dimOrder[axis - 1]

    def axisFieldName(self, axis, suffix):
        return 'FDF' + str(self.axisPhysicalSlot(axis)) + suffix

    def axisLabel(self, axis):
        return self.getField(self.axisFieldName(axis, 'LABEL'))

    def axisUnit(self, axis):
        code = self.getField(self.axisFieldName(axis, 'UNITS'))
        if code not in UNIT_CODES:
            warnings.warn('Unknown unit code ' + str(code) + ' for axis ' + str(axis))
            return 'none'
        return UNIT_CODES[code]

    def axisSweepWidth(self, axis):
        return self.getField(self.axisFieldName(axis, 'SW'))

    def axisObsFreq(self, axis):
        return self.getField(self.axisFieldName(axis, 'OBS'))

    def axisOrigin(self, axis):
        return self.getField(self.axisFieldName(axis, 'ORIG'))

    def axisQuadFlag(self, axis):
        # 1 means real, anything else complex
        return self.getFloat(self.axisFieldName(axis, 'QUADFLAG')) == 1

    def axisFtFlag(self, axis):
        return self.getField(self.axisFieldName(axis, 'FTFLAG')) != 0

    def axisFtSize(self, axis):
        return self.getField(self.axisFieldName(axis, 'FTSIZE'))

    def axisTdSize(self, axis):
        return self.getField(self.axisFieldName(axis, 'TDSIZE'))

    def axisCarrier(self, axis):
        return self.getField(self.axisFieldName(axis, 'CAR'))

    def axisCenter(self, axis):
        return self.getField(self.axisFieldName(axis, 'CENTER'))

    def axisOffPpm(self, axis):
        return self.getField(self.axisFieldName(axis, 'OFFPPM'))

    def axisSize(self, axis):
        return self.getField(SIZE_FIELDS[self.axisPhysicalSlot(axis)])

    def isTransposed(self):
        return self.getFloat('FDTRANSPOSED') == 1
