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
import re
from http.client import HTTPException, IncompleteRead
from urllib.error import URLError
from urllib.parse import urlparse
from urllib.request import urlopen, url2pathname
import dataset as ds

URI_PATTERN = re.compile('^[a-zA-Z][a-zA-Z0-9+.-]*://')
URL_TIMEOUT = 30.0


def isUri(locator):
    return bool(URI_PATTERN.match(str(locator)))


def localPath(locator):
    """
    Converts a locator to a local path if possible.

    Parameters
    ----------
    locator : str
        A file system path or a URI.

    Returns
    -------
    str or None
        The path, or None for URIs that are not file:// URIs.
    """
    locator = os.fspath(locator)
    if not isUri(locator):
        return locator
    parsed = urlparse(locator)
    if parsed.scheme == 'file':
        return url2pathname(parsed.path)
    return None


def checkSource(locator):
    """
    Pre-flight checks for a locator that points to the file system.

    Parameters
    ----------
    locator : str
        A file system path or a URI.

    Raises
    ------
    SourceNotFoundException
        When the file does not exist.
    SourcePermissionException
        When the file cannot be read.
    """
    path = localPath(locator)
    if path is None:
        return
    if not os.path.isfile(path):
        raise ds.SourceNotFoundException('File not found: ' + str(locator))
    if not os.access(path, os.R_OK):
        raise ds.SourcePermissionException('File permissions do not allow read: ' + str(locator))


def openSource(locator):
    """
    Opens a locator for binary reading.
    Use the result in a with statement.

    Parameters
    ----------
    locator : str
        A file system path or a URI.

    Returns
    -------
    file object
        Binary stream positioned at the start of the data.
    """
    checkSource(locator)
    path = localPath(locator)
    if path is not None:
        return open(path, 'rb')
    try:
        return urlopen(locator, timeout=URL_TIMEOUT)
    except URLError as err:
        raise ds.SourceNotFoundException('Could not open ' + str(locator) + ': ' + str(err.reason))
    except (HTTPException, OSError) as err:
        raise ds.SourceNotFoundException('Could not open ' + str(locator) + ': ' + str(err))


def readFailure(err, what):
    """Converts a transport error raised while reading into a LoadException"""
    if isinstance(err, IncompleteRead):
        return ds.SizeMismatchException('Unexpected end of data while reading ' + what + ': ' + str(len(err.partial)) + ' bytes read')
    return ds.SourceNotFoundException('Reading ' + what + ' failed: ' + str(err))


def readAll(locator):
    """
    Reads the complete content of a locator.

    Parameters
    ----------
    locator : str
        A file system path or a URI.

    Returns
    -------
    bytes
        The content.
    """
    with openSource(locator) as f:
        try:
            return f.read()
        except (HTTPException, OSError) as err:
            raise readFailure(err, str(locator))


def readAtMost(stream, nbytes):
    """Reads up to nbytes, fewer only at the end of the stream"""
    chunks = []
    remaining = nbytes
    while remaining > 0:
        try:
            chunk = stream.read(remaining)
        except (HTTPException, OSError) as err:
            raise readFailure(err, str(nbytes) + ' bytes')
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b''.join(chunks)


def readExact(stream, nbytes):
    """
    Reads an exact number of bytes from a stream.

    Parameters
    ----------
    stream : file object
        Binary stream.
    nbytes : int
        Number of bytes to read.

    Returns
    -------
    bytes
        The data.

    Raises
    ------
    SizeMismatchException
        When the stream ends early.
    """
    data = readAtMost(stream, nbytes)
    if len(data) < nbytes:
        raise ds.SizeMismatchException('Unexpected end of data: expected ' + str(nbytes) + ' bytes, got ' + str(len(data)))
    return data


def textLines(stream, encoding='latin-1'):
    # Yields decoded lines without line endings
    try:
        for line in stream:
            yield line.decode(encoding).rstrip('\r\n')
    except (HTTPException, OSError) as err:
        raise readFailure(err, 'text lines')


def baseName(locator):
    """Name of the file without directory and extension"""
    locator = os.fspath(locator)
    if isUri(locator):
        locator = urlparse(locator).path
    return os.path.splitext(os.path.basename(locator))[0]
