"""
Content of one Universal File Format type 58 dataset (function at a DOF).

Function types (record 6, field 1):
    0 - General or Unknown        1 - Time Response
    2 - Auto Spectrum             3 - Cross Spectrum
    4 - Frequency Response        5 - Transmissibility
    6 - Coherence                 7 - Auto Correlation
    8 - Cross Correlation         9 - Power Spectral Density
    10 - Energy Spectral Density  11 - Probability Density Function
    12 - Spectrum                 13 - Cumulative Frequency Distribution
    ...                           27 - Order Function

Data characteristics (records 8 to 11, field 1):
    0 - unknown, 8 - displacement, 11 - velocity, 12 - acceleration,
    13 - excitation force, 15 - pressure, 17 - time, 18 - frequency
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

# function_type: (abscissa label, ordinate label, abscissa / ordinate / denominator characteristics)
function_type_defaults = {
    1: ("Durée (s)", "Accélération (g)", (17, 12, 0)),
    12: ("Fréquence (Hz)", "Accélération (g eff)", (18, 12, 0)),
}
other_function_type_defaults = ("NONE", "NONE", (18, 12, 0))


@dataclass
class Uff58Dataset:
    """
    One type 58 record.

    ``data`` is a real or complex numpy array, or a
    :class:`~dts2uff.core.scaledsignal.ScaledSampleStream` (always real)
    which is read chunk by chunk while writing. The abscissa is always
    uniformly spaced: ``abscissa_start + i * abscissa_increment``.

    Fields left to None are filled from the function type at construction.
    """

    data: Any
    abscissa_increment: float
    binary: bool = False

    d1: str = ""
    d2: str = ""
    date: str = ""
    id4: str = "NONE"
    id5: str = "NONE"

    function_type: int = 1
    load_case_id: int = 0
    rsp_ent_name: str = "NONE"
    rsp_node: int = 0
    rsp_dir: int = 0
    ref_ent_name: str = "NONE"
    ref_node: int = 0
    ref_dir: int = 0

    abscissa_start: float = 0.0
    z_axis_value: float = 0.0

    abscissa_data_char: int | None = None
    abscissa_length_exp: int = 0
    abscissa_force_exp: int = 0
    abscissa_temp_exp: int = 0
    abscissa_axis_label: str | None = None
    abscissa_units_label: str = "NONE"

    ordinate_data_char: int | None = None
    ordinate_length_exp: int = 0
    ordinate_force_exp: int = 0
    ordinate_temp_exp: int = 0
    ordinate_axis_label: str | None = None
    ordinate_num_units_label: str = "NONE"

    ordinate_denom_data_char: int | None = None
    ordinate_denom_length_exp: int = 0
    ordinate_denom_force_exp: int = 0
    ordinate_denom_temp_exp: int = 0
    ordinate_denom_axis_label: str = "NONE"
    ordinate_denom_units_label: str = "NONE"

    z_data_char: int = 0
    z_length_exp: int = 0
    z_force_exp: int = 0
    z_temp_exp: int = 0
    z_axis_label: str = "NONE"
    z_units_label: str = "NONE"

    def __post_init__(self):
        x_label, y_label, chars = function_type_defaults.get(self.function_type, other_function_type_defaults)
        if self.abscissa_axis_label is None:
            self.abscissa_axis_label = x_label
        if self.ordinate_axis_label is None:
            self.ordinate_axis_label = y_label
        if self.abscissa_data_char is None:
            self.abscissa_data_char = chars[0]
        if self.ordinate_data_char is None:
            self.ordinate_data_char = chars[1]
        if self.ordinate_denom_data_char is None:
            self.ordinate_denom_data_char = chars[2]
        if not hasattr(self.data, "read"):
            self.data = np.asarray(self.data)
            if self.data.ndim != 1:
                raise ValueError(f"data must be one dimensional, not {self.data.ndim}")

    @property
    def is_complex(self):
        return isinstance(self.data, np.ndarray) and np.iscomplexobj(self.data)

    @property
    def ordinate_form(self):
        """2 = real double precision, 6 = complex double precision."""
        return 6 if self.is_complex else 2

    def __len__(self):
        return len(self.data)

    def abscissa(self):
        return self.abscissa_start + np.arange(len(self)) * self.abscissa_increment
