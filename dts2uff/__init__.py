"""
dts2uff converts DTS SLICEWare test exports into Universal File Format
type 58 datasets
"""
# this need to be at the begining because some sub module will need the version
from dts2uff.version import version as __version__

import logging

logging_handler = logging.StreamHandler()

from dts2uff.core import *
from dts2uff.io import *
from dts2uff.conversion import (
    ConversionRequest,
    ConversionReport,
    OutputFormat,
    convert,
    convert_folder,
    list_tracks,
)
