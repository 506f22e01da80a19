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

import re
import numpy as np
import dataset as ds
import denseGrid as dg
import fileSource as fs

COMMENT_CHAR = '#'
MAX_DATA_COLUMNS = 8
INTEGER_PATTERN = re.compile('[+-]?[0-9]+')


def kindForColumns(num):
    if num < 1 or num > MAX_DATA_COLUMNS:
        raise ds.ComponentCountException('Unsupported number of data columns: ' + str(num))
    return dg.kindFromComponents(num)


def splitRows(lines):
    """
    Splits lines into tokens, skipping blank lines and comments.

    Parameters
    ----------
    lines : iterable of str
        The lines of the file.

    Yields
    ------
    int
        The 1-based line number.
    list of str
        The tokens of the line.
    """
    for lineNo, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith(COMMENT_CHAR):
            continue
        yield lineNo, line.split()


def isIntegral(token):
    # plain ASCII digits only, no underscores or other numeral forms
    return INTEGER_PATTERN.fullmatch(token) is not None


def toFloat(token, lineNo):
    try:
        return float(token)
    except ValueError:
        raise ds.MalformedRowException('Line ' + str(lineNo) + ': ' + repr(token) + ' is not a number')


class TextSchema(object):
    """Column roles and coordinate bounding box of a sparse text file."""

    def __init__(self, numColumns, numDims, minCoord, maxCoord):
        self.numColumns = numColumns
        self.numDims = numDims
        self.numData = numColumns - numDims
        self.minCoord = list(minCoord)
        self.maxCoord = list(maxCoord)

    def extents(self):
        return [hi - lo + 1 for lo, hi in zip(self.minCoord, self.maxCoord)]

    def kind(self):
        return kindForColumns(self.numData)

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return (self.numColumns, self.numDims, self.minCoord, self.maxCoord) == (other.numColumns, other.numDims, other.minCoord, other.maxCoord)
        return False

    def __repr__(self):
        return 'TextSchema(columns=' + str(self.numColumns) + ', dims=' + str(self.numDims) + ', min=' + str(self.minCoord) + ', max=' + str(self.maxCoord) + ')'


def inferSchema(lines, numDims=None):
    """
    First pass: finds the coordinate columns and their range.
    A column is a coordinate column when it is part of the leading run of
    columns that hold integers in every row.

    Parameters
    ----------
    lines : iterable of str
        The lines of the file.
    numDims : int, optional
        Number of coordinate columns.
        By default it is inferred from the values.

    Returns
    -------
    TextSchema
        The inferred schema.
    """
    numColumns = None
    integral = []
    minCoord = []
    maxCoord = []
    for lineNo, tokens in splitRows(lines):
        if numColumns is None:
            numColumns = len(tokens)
            integral = [True] * numColumns
            minCoord = [None] * numColumns
            maxCoord = [None] * numColumns
        elif len(tokens) != numColumns:
            raise ds.MalformedRowException('Line ' + str(lineNo) + ' has ' + str(len(tokens)) + ' columns, expected ' + str(numColumns))
        for col, token in enumerate(tokens):
            if integral[col] and isIntegral(token):
                value = int(token)
                if minCoord[col] is None or value < minCoord[col]:
                    minCoord[col] = value
                if maxCoord[col] is None or value > maxCoord[col]:
                    maxCoord[col] = value
            else:
                toFloat(token, lineNo)
                integral[col] = False
    if numColumns is None:
        raise ds.NoDimensionColumnsException('No data rows found')
    leading = 0
    while leading < numColumns and integral[leading]:
        leading += 1
    if numDims is None:
        numDims = leading
    elif numDims > leading:
        raise ds.NoDimensionColumnsException('Column ' + str(leading + 1) + ' does not hold integer coordinates')
    if numDims < 1:
        raise ds.NoDimensionColumnsException('No integer coordinate columns found')
    if numDims >= numColumns:
        raise ds.NoDataColumnsException('No data columns found after ' + str(numDims) + ' coordinate columns')
    return TextSchema(numColumns, numDims, minCoord[:numDims], maxCoord[:numDims])


def populate(lines, schema, dtype=np.float64, flipY=False):
    """
    Second pass: scatters every row into a dense grid.
    Repeated coordinates are not an error, the last row wins.

    Parameters
    ----------
    lines : iterable of str
        The same lines that were used for the schema.
    schema : TextSchema
        The result of inferSchema.
    dtype : numpy dtype, optional
        Float type of the grid.
    flipY : bool, optional
        Mirror the second axis, for files with the origin at the upper left
        (NMRPipe pipe2txt output).

    Returns
    -------
    GridData
        The populated grid.
    """
    grid = dg.allocate(schema.kind(), schema.extents(), dtype)
    numDims = schema.numDims
    for lineNo, tokens in splitRows(lines):
        if len(tokens) != schema.numColumns:
            raise ds.MalformedRowException('Line ' + str(lineNo) + ' has ' + str(len(tokens)) + ' columns, expected ' + str(schema.numColumns))
        if not all(isIntegral(tokens[i]) for i in range(numDims)):
            raise ds.MalformedRowException('Line ' + str(lineNo) + ' has a non-integer coordinate')
        coord = tuple(int(tokens[i]) - schema.minCoord[i] for i in range(numDims))
        for i, pos in enumerate(coord):
            if pos < 0 or pos > schema.maxCoord[i] - schema.minCoord[i]:
                raise ds.MalformedRowException('Line ' + str(lineNo) + ' lies outside the inferred coordinate range')
        grid[coord] = [toFloat(token, lineNo) for token in tokens[numDims:]]
    if flipY and grid.ndim() >= 2:
        grid.flip(1)
    return grid


def decodeText(lines, numDims=None, dtype=np.float64, flipY=False):
    """
    Decodes sparse text held in memory.

    Parameters
    ----------
    lines : iterable of str
        The lines of the file. Iterated twice.
    numDims : int, optional
        Number of coordinate columns.
    dtype : numpy dtype, optional
        Float type of the grid.
    flipY : bool, optional
        Mirror the second axis.

    Returns
    -------
    str
        The element kind.
    GridData
        The decoded grid.
    TextSchema
        The inferred schema.
    """
    lines = list(lines)
    schema = inferSchema(lines, numDims)
    grid = populate(lines, schema, dtype, flipY)
    return grid.kind, grid, schema


def loadText(filePath, numDims=None, dtype=np.float64, flipY=False):
    """
    Loads a sparse text file.
    The file is opened once for each pass.

    Parameters
    ----------
    filePath: string
        Path or URI of the file that should be loaded
    numDims : int, optional
        Number of coordinate columns.
        By default it is inferred from the values.
    dtype : numpy dtype, optional
        Float type of the grid.
    flipY : bool, optional
        Mirror the second axis, for pipe2txt output.

    Returns
    -------
    NmrDataset
        Dataset of the loaded data
    """
    with fs.openSource(filePath) as f:
        schema = inferSchema(fs.textLines(f), numDims)
    with fs.openSource(filePath) as f:
        grid = populate(fs.textLines(f), schema, dtype, flipY)
    metaData = {'columns': schema.numColumns, 'flipped': flipY}
    for i in range(schema.numDims):
        pre = 'dim ' + str(i + 1) + ' '
        metaData[pre + 'min'] = schema.minCoord[i]
        metaData[pre + 'max'] = schema.maxCoord[i]
    masterData = ds.NmrDataset(grid, str(filePath), metaData=metaData)
    masterData.addHistory("Text data loaded from " + str(filePath))
    return masterData


def saveText(filePath, grid, maxComponents=2, flipY=False):
    """
    Save a grid as sparse text.
    Every point gets a row with 1-based coordinates followed by its component values.

    Parameters
    ----------
    filePath: string
        Path of the file that should be saved
    grid: GridData or NmrDataset
        The data to be saved
    maxComponents: int (optional)
        Maximum number of component values per row
    flipY: bool (optional)
        Write the second axis mirrored, with the origin at the upper left
    """
    if isinstance(grid, ds.NmrDataset):
        grid = grid.data
    if flipY and grid.ndim() >= 2:
        grid = grid.copy()
        grid.flip(1)
    numComp = max(1, min(maxComponents, grid.componentCount()))
    with open(filePath, 'w') as f:
        for coord in np.ndindex(*grid.shape()):
            values = grid[coord][:numComp]
            row = [str(c + 1) for c in coord] + [repr(float(v)) for v in values]
            f.write(' '.join(row) + '\n')
