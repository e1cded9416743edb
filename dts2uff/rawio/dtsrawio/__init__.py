"""
RawIO for reading the test exports of DTS SLICEWare data recorders.

DTS contains the XML description of the modules and channels
CHN contains the header and the ADC codes of one channel
"""

from dts2uff.rawio.dtsrawio.dtsrawio import DtsRawIO
