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
import denseGrid as dg

UNITS = ('none', 's', 'Hz', 'ppm', 'pts')


class DatasetException(Exception):
    pass


class LoadException(DatasetException):
    pass


class SourceNotFoundException(LoadException, FileNotFoundError):
    pass


class SourcePermissionException(LoadException, PermissionError):
    pass


class FileTooSmallException(LoadException):
    pass


class MisalignedLengthException(LoadException):
    pass


class BadMagicException(LoadException):
    pass


class ByteOrderException(LoadException):
    pass


class DimCountException(LoadException):
    pass


class ComponentCountException(LoadException):
    pass


class HigherDimComplexException(LoadException, NotImplementedError):
    pass


class PointFormatException(LoadException):
    pass


class SizeMismatchException(LoadException):
    pass


class TileSizeException(LoadException):
    pass


class SchemaException(LoadException):
    pass


class NoDimensionColumnsException(SchemaException):
    pass


class NoDataColumnsException(SchemaException):
    pass


class MalformedRowException(LoadException):
    pass


class Axis(object):
    """Description of a single axis of a dataset."""

    def __init__(self, label='', unit='none', origin=0.0, sw=0.0, freq=0.0, quadrature=True, slot=None, spec=False, points=0, tileSize=None):
        """
        Initializes the Axis.

        Parameters
        ----------
        label : str, optional
            The axis label (for example the nucleus).
        unit : str, optional
            One of 'none', 's', 'Hz', 'ppm' or 'pts'.
        origin : float, optional
            The axis origin or offset.
        sw : float, optional
            The sweep (spectral) width in Hz.
        freq : float, optional
            The observation frequency in MHz.
        quadrature : bool, optional
            True when the axis is stored as real values only, False for complex storage.
        slot : int or None, optional
            Where the fields of this axis live in the file header.
        spec : bool, optional
            True if the axis is in the frequency domain.
        points : int, optional
            Number of points along the axis.
        tileSize : int or None, optional
            Tile size, for tiled formats.
        """
        if unit not in UNITS:
            raise DatasetException('Unknown axis unit ' + repr(unit))
        self.label = label
        self.unit = unit
        self.origin = origin
        self.sw = sw
        self.freq = freq
        self.quadrature = quadrature
        self.slot = slot
        self.spec = spec
        self.points = points
        self.tileSize = tileSize

    def __repr__(self):
        return 'Axis(label=' + repr(self.label) + ', unit=' + repr(self.unit) + ', points=' + str(self.points) + ', sw=' + str(self.sw) + ', freq=' + str(self.freq) + ')'

#########################################################################
# the dataset class


class NmrDataset(object):
    """
    A decoded dataset: where it came from, its element kind, the grid and its provenance.
    """

    def __init__(self, data, source, axes=None, metaData=None, history=None, name=''):
        """
        Initializes the NmrDataset object.

        Parameters
        ----------
        data : GridData
            The decoded grid.
        source : str
            The locator (path or URI) the data was read from.
        axes : list of Axis, optional
            One entry per grid axis.
            By default plain axes with the grid size are generated.
        metaData : dict, optional
            Provenance strings and numbers.
            By default the metadata is empty.
        history : list of str, optional
            The history of the data.
            By default the history is set to an empty list.
        name : str, optional
            A string with the name of the dataset.
        """
        if not isinstance(data, dg.GridData):
            raise DatasetException('Dataset needs GridData, got ' + type(data).__name__)
        self.data = data
        self.source = source
        self.name = name
        if axes is None:
            self.axes = [Axis(points=n) for n in data.shape()]
        else:
            if len(axes) != data.ndim():
                raise DatasetException('Number of axes does not match the number of dimensions')
            self.axes = list(axes)
        if metaData is None:
            self.metaData = {}
        else:
            self.metaData = metaData
        if history is None:
            self.history = []
        else:
            self.history = history

    @property
    def kind(self):
        return self.data.kind

    def ndim(self):
        return self.data.ndim()

    def shape(self):
        return self.data.shape()

    def freq(self):
        return np.array([ax.freq for ax in self.axes])

    def sw(self):
        return np.array([ax.sw for ax in self.axes], dtype=float)

    def rename(self, name):
        """
        Changes the name of the dataset.

        Parameters
        ----------
        name : str
            The new name.
        """
        self.name = name

    def getHistory(self):
        """
        Returns the history separated by newlines.
        """
        return "\n".join(self.history)

    def addHistory(self, msg):
        """
        Adds a message to the data history.

        Parameters
        ----------
        msg : str
            The message to add to the history list.
        """
        self.history.append(msg)

    def __repr__(self):
        return 'NmrDataset(' + repr(self.source) + ', ' + self.kind + ', ' + str(self.shape()) + ')'


class DataBundle(object):
    """Ordered collection of datasets returned by a single load call."""

    def __init__(self, datasets=None):
        self.datasets = []
        if datasets is not None:
            for item in datasets:
                self.add(item)

    def add(self, dataset):
        if not isinstance(dataset, NmrDataset):
            raise DatasetException('Only NmrDataset objects can be bundled')
        self.datasets.append(dataset)

    def ofKind(self, kind):
        return [item for item in self.datasets if item.kind == kind]

    def __len__(self):
        return len(self.datasets)

    def __iter__(self):
        return iter(self.datasets)

    def __getitem__(self, num):
        return self.datasets[num]
