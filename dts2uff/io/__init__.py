"""
:mod:`dts2uff.io` provides classes for reading and/or writing
the files produced by the conversion.

:attr:`dts2uff.io.iolist` provides a list of the io classes.

Classes:

* :attr:`Uff58IO`


.. autoclass:: dts2uff.io.Uff58IO

    .. autoattribute:: extensions

"""

from dts2uff.io.uff58io import Uff58IO, Uff58LineFormat, LEGACY_MATLAB

iolist = [
    Uff58IO,
]
