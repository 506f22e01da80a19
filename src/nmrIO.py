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

import os
import warnings
import dataset as ds
import fileSource as fs
import pipeHeader as ph
import pipeIO
import textIO
import ucsfIO

MATCHED = 'matched'
NOT_MATCHED = 'not matched'
PROBE_ERROR = 'error'


def probePipe(filePath):
    """
    Checks whether a file holds pipe data.
    Only the header is read, and no warnings are emitted.

    Parameters
    ----------
    filePath: string
        Path or URI of the file

    Returns
    -------
    str
        MATCHED, NOT_MATCHED or PROBE_ERROR
    """
    try:
        with fs.openSource(filePath) as f:
            rawBytes = fs.readAtMost(f, ph.HEADER_BYTES)
    except (ds.LoadException, OSError):
        return PROBE_ERROR
    if len(rawBytes) < ph.HEADER_BYTES:
        return NOT_MATCHED
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        try:
            ph.parseHeader(rawBytes)
        except (ds.BadMagicException, ds.ByteOrderException):
            return NOT_MATCHED
    return MATCHED


def probeUcsf(filePath):
    """
    Checks whether a file starts with the UCSF magic.

    Parameters
    ----------
    filePath: string
        Path or URI of the file

    Returns
    -------
    str
        MATCHED, NOT_MATCHED or PROBE_ERROR
    """
    try:
        with fs.openSource(filePath) as f:
            magic = fs.readAtMost(f, 10)
    except (ds.LoadException, OSError):
        return PROBE_ERROR
    if ucsfIO.cString(magic) == ucsfIO.UCSF_MAGIC:
        return MATCHED
    return NOT_MATCHED


def fileTypeCheck(filePath):
    """
    Detects which file type is contained in the filepath.

    Parameters
    ----------
    filePath: string
        Path or URI of the file

    Returns
    -------
    str
        'ucsf', 'pipe' or 'text'
    """
    fs.checkSource(filePath)
    if probeUcsf(filePath) == MATCHED:
        return 'ucsf'
    if probePipe(filePath) == MATCHED:
        return 'pipe'
    return 'text'


def loadFile(filePath, textInfo=None):
    """
    Loads file from filePath using the correct routine.

    Parameters
    ----------
    filePath: string
        Path or URI of the file that should be loaded
    textInfo: list (optional)
        Extra info for loading text data
        [numDims, dtype, flipY]
        numDims: int or None
            Number of coordinate columns, None to infer it
        dtype: numpy dtype (optional)
            Float type of the grid
        flipY: bool (optional)
            True for files with the origin at the upper left

    Returns
    -------
    NmrDataset
        Dataset of the loaded data
    """
    num = fileTypeCheck(filePath)
    if num == 'ucsf':
        masterData = ucsfIO.loadUcsf(filePath)
    elif num == 'pipe':
        masterData = pipeIO.loadPipe(filePath)
    elif textInfo is None:
        masterData = textIO.loadText(filePath)
    else:
        masterData = textIO.loadText(filePath, *textInfo)
    masterData.rename(fs.baseName(filePath))
    return masterData


def autoLoad(filePathList, textInfoList=None):
    """
    Loads a list of files using the automatic routine.

    Parameters
    ----------
    filePathList: string or list of strings
        Paths or URIs of the files that should be loaded
    textInfoList: list of lists (optional)
        Extra info needed for loading text data, one entry per file.
        If no info needs to be given 'None' should be passed

    Returns
    -------
    DataBundle
        The loaded datasets, in the order of filePathList
    """
    if isinstance(filePathList, (str, os.PathLike)):
        filePathList = [filePathList]
    if textInfoList is None:
        textInfoList = [None] * len(filePathList)
    if len(textInfoList) != len(filePathList):
        raise ds.LoadException('Need one textInfo entry per file')
    bundle = ds.DataBundle()
    for filePath, textInfo in zip(filePathList, textInfoList):
        bundle.add(loadFile(filePath, textInfo))
    return bundle
