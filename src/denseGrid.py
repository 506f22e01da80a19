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

import numpy as np

KINDS = ('real', 'complex', 'quaternion', 'octonion')
COMPONENTS = {'real': 1, 'complex': 2, 'quaternion': 4, 'octonion': 8}


class GridException(Exception):
    pass


def kindFromComponents(num):
    """
    Selects the element kind that can hold a given number of components.

    Parameters
    ----------
    num : int
        Number of scalar values per sample.

    Returns
    -------
    str
        One of 'real', 'complex', 'quaternion' or 'octonion'.

    Raises
    ------
    GridException
        When num is outside [1, 8].
    """
    if num < 1 or num > 8:
        raise GridException('Unsupported component count ' + str(num))
    if num <= 1:
        return 'real'
    if num <= 2:
        return 'complex'
    if num <= 4:
        return 'quaternion'
    return 'octonion'


def allocate(kind, extents, dtype=np.float32):
    """
    Creates a zero filled grid.

    Parameters
    ----------
    kind : str
        The element kind.
    extents : sequence of ints
        The size of each axis.
    dtype : numpy dtype, optional
        The float type of each component.
        By default float32 is used.

    Returns
    -------
    GridData
        The new grid.
    """
    if kind not in COMPONENTS:
        raise GridException('Unknown element kind ' + repr(kind))
    extents = tuple(int(x) for x in extents)
    if any(x < 0 for x in extents):
        raise GridException('Negative extent in ' + str(extents))
    return GridData(np.zeros((COMPONENTS[kind],) + extents, dtype=dtype), kind)

#########################################################################
# the dense grid class


class GridData(object):
    """
    Dense multi-dimensional grid of real, complex, quaternion or octonion elements.

    The first dimension of self.data holds the components of the elements:
    self.data[0] is the real part, self.data[1] the i part, self.data[2] the j part, etc.
    The other dimensions are the axes of the grid, ordered by axis index.
    """

    def __init__(self, data, kind=None):
        """
        Initializes the GridData

        Parameters
        ----------
        data : array_like
            Component-major data, the first dimension is the component index.
        kind : str, optional
            The element kind.
            If kind is None, it is derived from the length of the first dimension.
        """
        self.data = np.asarray(data)
        if self.data.ndim < 1:
            raise GridException('Grid data needs a component dimension')
        if kind is None:
            kind = kindFromComponents(len(self.data))
        if kind not in COMPONENTS:
            raise GridException('Unknown element kind ' + repr(kind))
        if len(self.data) != COMPONENTS[kind]:
            raise GridException('Kind ' + kind + ' needs ' + str(COMPONENTS[kind]) + ' components, got ' + str(len(self.data)))
        self.kind = kind

    def ndim(self):
        return self.data.ndim - 1

    def shape(self):
        return self.data.shape[1:]

    def size(self):
        return int(np.prod(self.shape(), dtype=np.int64))

    def componentCount(self):
        return COMPONENTS[self.kind]

    def getComponent(self, num):
        """
        Returns the plane of a single component.

        Parameters
        ----------
        num : int
            The component index (0 is the real part).

        Returns
        -------
        ndarray
            View of the component values, with the shape of the grid.
        """
        return self.data[num]

    def checkCoord(self, coord):
        if not isinstance(coord, tuple):
            try:
                coord = tuple(coord)
            except TypeError:
                coord = (coord, )
        if len(coord) != self.ndim():
            raise IndexError('Expected ' + str(self.ndim()) + ' coordinates, got ' + str(len(coord)))
        return tuple(int(x) for x in coord)

    def __repr__(self, *args):
        return self.__class__.__name__ + '(' + repr(self.data) + ', ' + repr(self.kind) + ')'

    def __len__(self):
        return self.shape()[0] if self.ndim() > 0 else 0

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return self.kind == other.kind and self.data.shape == other.data.shape and bool(np.all(other.data == self.data))
        return False

    def __ne__(self, other):
        return not self.__eq__(other)

    def __getitem__(self, coord):
        coord = self.checkCoord(coord)
        return np.copy(self.data[(slice(None), ) + coord])

    def __setitem__(self, coord, value):
        coord = self.checkCoord(coord)
        value = np.atleast_1d(np.asarray(value, dtype=self.data.dtype))
        num = min(len(value), self.componentCount())
        self.data[(slice(None, num), ) + coord] = value[:num]
        self.data[(slice(num, None), ) + coord] = 0

    def setComponent(self, coord, num, value):
        coord = self.checkCoord(coord)
        self.data[(num, ) + coord] = value

    def flip(self, axis):
        """
        Mirrors the grid along an axis.
        The values are moved in memory, so later consumers see the new order.

        Parameters
        ----------
        axis : int
            The axis along which to flip.
        """
        if axis < 0:
            axis += self.ndim()
        if not 0 <= axis < self.ndim():
            raise IndexError('Not a valid axis for GridData')
        self.data = np.ascontiguousarray(np.flip(self.data, axis + 1))

    def toComplex(self):
        """
        Converts real or complex grids to a numpy complex array.

        Returns
        -------
        ndarray
            Complex array with the shape of the grid.
        """
        if self.kind == 'real':
            return self.data[0].astype(complex)
        if self.kind == 'complex':
            return self.data[0] + 1j * self.data[1]
        raise GridException('Cannot convert ' + self.kind + ' data to complex')

    def copy(self):
        """
        Returns a copy of the grid.

        Returns
        -------
        GridData
            A copy of the data.
        """
        return GridData(np.copy(self.data), self.kind)
