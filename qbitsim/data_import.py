"""
Polar Data Import

Loads airfoil polar tables (angle of attack vs lift, drag and moment
coefficients) into a common in-memory format:
- Generic CSV files with flexible column naming
- A synthetic NACA 0015 full-range polar for development and testing

The simulation core only ever consumes the in-memory table.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional, Sequence
from dataclasses import dataclass
import warnings


ALPHA_ALIASES = ('alpha', 'alpha_deg', 'aoa')
CL_ALIASES = ('cl', 'c_l', 'lift')
CD_ALIASES = ('cd', 'c_d', 'drag')
CM_ALIASES = ('cm', 'c_m', 'moment')


@dataclass
class PolarData:
    """
    Standardized container for airfoil polar data.

    Angles in degrees, coefficients dimensionless.
    """
    alpha: np.ndarray  # deg
    cl: np.ndarray
    cd: np.ndarray
    cm: np.ndarray

    name: str = "polar"
    reynolds_number: Optional[float] = None
    source: str = "unknown"

    def __post_init__(self):
        """Validate, sort by angle and drop repeated angles."""
        self.alpha = np.asarray(self.alpha, dtype=np.float64)
        self.cl = np.asarray(self.cl, dtype=np.float64)
        self.cd = np.asarray(self.cd, dtype=np.float64)
        self.cm = np.asarray(self.cm, dtype=np.float64)

        if not (len(self.alpha) == len(self.cl) == len(self.cd) == len(self.cm)):
            raise ValueError("alpha, cl, cd and cm must have same length")

        if len(self.alpha) < 2:
            raise ValueError("Polar needs at least two angle-of-attack samples")

        table = np.column_stack([self.alpha, self.cl, self.cd, self.cm])
        if not np.all(np.isfinite(table)):
            raise ValueError("Polar contains non-finite values")

        if np.any(np.diff(self.alpha) <= 0):
            order = np.argsort(self.alpha, kind='stable')
            alpha_sorted = self.alpha[order]
            _, first = np.unique(alpha_sorted, return_index=True)
            keep = order[first]
            if len(keep) < len(self.alpha):
                warnings.warn(
                    f"Polar '{self.name}': dropped {len(self.alpha) - len(keep)} "
                    f"repeated angle-of-attack sample(s)"
                )
            else:
                warnings.warn(f"Polar '{self.name}': samples were not sorted by angle")
            self.alpha = self.alpha[keep]
            self.cl = self.cl[keep]
            self.cd = self.cd[keep]
            self.cm = self.cm[keep]

            if len(self.alpha) < 2:
                raise ValueError("Polar needs at least two distinct angle-of-attack samples")

    @property
    def alpha_range(self):
        """(min, max) sampled angle of attack (deg)."""
        return float(self.alpha[0]), float(self.alpha[-1])

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to pandas DataFrame for easy manipulation."""
        df = pd.DataFrame({
            'alpha_deg': self.alpha,
            'cl': self.cl,
            'cd': self.cd,
            'cm': self.cm,
        })
        df.attrs['name'] = self.name
        df.attrs['Re'] = self.reynolds_number
        df.attrs['source'] = self.source
        return df


def _find_column(columns: Sequence[str], aliases: Sequence[str]) -> Optional[str]:
    lowered = {c.strip().lower(): c for c in columns}
    for alias in aliases:
        if alias in lowered:
            return lowered[alias]
    return None


def load_polar_csv(
    filepath: str,
    name: Optional[str] = None,
    reynolds_number: Optional[float] = None,
    skip_rows: int = 0
) -> PolarData:
    """
    Load a polar table from CSV.

    Column names are matched case-insensitively: alpha/alpha_deg/AoA,
    Cl, Cd and Cm. A missing Cm column is read as zero moment.

    Args:
        filepath: Path to CSV file
        name: Polar name (file stem if None)
        reynolds_number: Reynolds number of the data, if known
        skip_rows: Number of header rows to skip

    Returns:
        PolarData object
    """
    path = Path(filepath)
    df = pd.read_csv(path, skiprows=skip_rows, comment='#')

    alpha_col = _find_column(df.columns, ALPHA_ALIASES)
    cl_col = _find_column(df.columns, CL_ALIASES)
    cd_col = _find_column(df.columns, CD_ALIASES)
    cm_col = _find_column(df.columns, CM_ALIASES)

    missing = [label for label, col in
               (('alpha', alpha_col), ('Cl', cl_col), ('Cd', cd_col)) if col is None]
    if missing:
        raise ValueError(f"Missing required columns: {missing}. Available: {df.columns.tolist()}")

    if cm_col is None:
        warnings.warn(f"No moment column in {path.name}; using Cm = 0")
        cm = np.zeros(len(df))
    else:
        cm = df[cm_col].values

    return PolarData(
        alpha=df[alpha_col].values,
        cl=df[cl_col].values,
        cd=df[cd_col].values,
        cm=cm,
        name=name or path.stem,
        reynolds_number=reynolds_number,
        source='CSV'
    )


def create_naca0015_polar(step_deg: float = 1.0) -> PolarData:
    """
    Synthetic full-range (-180 to 180 deg) NACA 0015-like polar.

    Thin-airfoil behaviour below stall is blended into flat-plate
    behaviour past ~14 deg with a logistic weight, which keeps every
    coefficient smooth across the whole circle.

    Args:
        step_deg: Angle-of-attack sample spacing (deg)

    Returns:
        PolarData with synthetic data
    """
    alpha = np.arange(-180.0, 180.0 + 0.5 * step_deg, step_deg)
    a = np.radians(alpha)

    cl_slope = 0.105     # per degree
    alpha_stall = 14.0   # deg
    blend_width = 2.0    # deg

    stalled = 1.0 / (1.0 + np.exp(-(np.abs(alpha) - alpha_stall) / blend_width))

    cl_attached = cl_slope * alpha
    cd_attached = 0.011 + 1.0e-4 * alpha**2

    cl_plate = 1.05 * np.sin(2 * a)
    cd_plate = 0.02 + 1.8 * np.sin(a)**2
    cm_plate = -0.45 * np.sin(a)

    cl = (1 - stalled) * cl_attached + stalled * cl_plate
    cd = (1 - stalled) * cd_attached + stalled * cd_plate
    cm = stalled * cm_plate

    return PolarData(
        alpha=alpha,
        cl=cl,
        cd=cd,
        cm=cm,
        name="NACA 0015 synthetic",
        reynolds_number=1.6e5,
        source='synthetic'
    )
