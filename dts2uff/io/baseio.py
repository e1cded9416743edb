"""
baseio
======

Classes
-------

BaseIO        - abstract class which should be overridden, managing how a
                file will load/write its data

"""

from __future__ import annotations

from pathlib import Path
import logging

from dts2uff import logging_handler


class BaseIO:
    """
    Generic class to handle the file read/write methods of the objects of
    :mod:`dts2uff.core`.

    This is an abstract class that will be subclassed for each format.
    Each class declares what it can read or write with ``readable_objects``
    and ``writeable_objects``.
    """

    is_readable = False
    is_writable = False

    readable_objects = []
    writeable_objects = []

    name = "BaseIO"
    description = ""
    extensions = []

    mode = "file"  # or 'dir'

    def __init__(self, filename: str | Path = None, **kargs):
        self.filename = filename

        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # create a logger for 'dts2uff' and add a handler to it if it doesn't
        # have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)
