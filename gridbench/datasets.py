"""
Dataset Profiles and Loading

Each benchmark dataset is described by a profile: the file and variable to
read and the querying parameters known to work well for its resolution.
Files are opened with xarray and the 2D longitude/latitude of the variable
are discovered from CF metadata, falling back to common coordinate names.

Profiles:
    0  ORCA       NEMO ORCA025 global ocean model output (tripolar grid)
    1  UCA25D     Regional ocean model sea level
    2  EUMETSAT   Meteosat-7 visible channel on the satellite projection
    3  SYNTHETIC  Rotated and warped grid generated in memory
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple
import numpy as np
import xarray as xr

from .data_models import CurvilinearCoordinates, QueryingParameters
from .exceptions import InvalidConfigurationError
from .synthetic_data import generate_synthetic_dataset

LON_NAMES = ("nav_lon", "lon", "longitude", "lonc", "glamt", "x_lon")
LAT_NAMES = ("nav_lat", "lat", "latitude", "latc", "gphit", "y_lat")
LON_UNITS = ("degrees_east", "degree_east", "degree_e", "degrees_e")
LAT_UNITS = ("degrees_north", "degree_north", "degree_n", "degrees_n")

SYNTHETIC_SIZE = 200
SYNTHETIC_SPACING = 0.05


@dataclass(frozen=True)
class DatasetProfile:
    """
    A benchmark dataset and its tuned search parameters.

    Attributes:
        tag: Command-line dataset number
        name: Short name
        filename: File name relative to the data directory (None if generated)
        variable: Data variable to resample
        nominal_resolution: Typical cell spacing in degrees
        expansion_factor: Default search expansion factor
        max_distance: Default maximum search distance in degrees
    """
    tag: int
    name: str
    filename: Optional[str]
    variable: str
    nominal_resolution: float
    expansion_factor: float
    max_distance: float

    def default_querying_parameters(self, max_iterations: int = 1) -> QueryingParameters:
        """Parameters starting the search at the nominal resolution."""
        return QueryingParameters(
            minimum_resolution=self.nominal_resolution,
            expansion_factor=self.expansion_factor,
            maximum_search_distance=self.max_distance,
            max_iterations=max_iterations
        )

    @property
    def is_synthetic(self) -> bool:
        return self.filename is None


DATASET_PROFILES: Dict[int, DatasetProfile] = {
    0: DatasetProfile(0, "ORCA", "ORCA025-R07_y2004_ANNUAL_gridT2.nc",
                      "sossheig_sqd", 0.13, 3.25, 0.75),
    1: DatasetProfile(1, "UCA25D", "UCA25D.20101118.04.nc",
                      "sea_level", 0.005, 2.12, 0.038),
    2: DatasetProfile(2, "EUMETSAT",
                      "W_XX-EUMETSAT-Darmstadt,VIS+IR+IMAGERY,MET7+MVIRI_C_EUMS_20091110120000.nc",
                      "ch1", 0.03, 2.5, 0.2),
    3: DatasetProfile(3, "SYNTHETIC", None, "sea_level", SYNTHETIC_SPACING, 2.0, 5 * SYNTHETIC_SPACING),
}


def get_dataset_profile(tag: int) -> DatasetProfile:
    """
    Look up a dataset profile by tag.

    Raises:
        InvalidConfigurationError: For an unknown tag
    """
    try:
        return DATASET_PROFILES[int(tag)]
    except (KeyError, TypeError, ValueError):
        raise InvalidConfigurationError(
            f"Unknown dataset {tag!r}, expected one of {sorted(DATASET_PROFILES)}") from None


def _classify(name: str, var: xr.DataArray) -> Optional[str]:
    """Return 'lon', 'lat' or None for a candidate coordinate variable."""
    units = str(var.attrs.get("units", "")).lower()
    standard_name = str(var.attrs.get("standard_name", "")).lower()
    if units in LON_UNITS or standard_name == "longitude":
        return "lon"
    if units in LAT_UNITS or standard_name == "latitude":
        return "lat"
    if name.lower() in LON_NAMES:
        return "lon"
    if name.lower() in LAT_NAMES:
        return "lat"
    return None


def find_coordinate_names(ds: xr.Dataset, variable: xr.DataArray) -> Tuple[str, str]:
    """
    Find the longitude and latitude variables describing ``variable``.

    Candidates listed in the variable's ``coordinates`` attribute (or its
    encoding, where xarray moves it on decode) are preferred, then the
    variable's own coordinates, then every variable of the dataset.

    Raises:
        InvalidConfigurationError: If either coordinate cannot be found
    """
    candidates = str(variable.attrs.get("coordinates", "")).split()
    candidates += str(variable.encoding.get("coordinates", "")).split()
    candidates += [str(name) for name in variable.coords]
    candidates += [str(name) for name in ds.variables]

    found: Dict[str, str] = {}
    for name in candidates:
        if name not in ds.variables or name == variable.name:
            continue
        kind = _classify(name, ds[name])
        if kind is not None and kind not in found:
            found[kind] = name

    if "lon" not in found or "lat" not in found:
        raise InvalidConfigurationError(
            f"Cannot find lon/lat coordinates for {variable.name!r}. "
            f"Available: {list(ds.variables)}")
    return found["lon"], found["lat"]


def _plane(values: np.ndarray) -> np.ndarray:
    """Drop leading dimensions of a coordinate array (e.g. a time axis)."""
    values = np.asarray(values, dtype=np.float64)
    while values.ndim > 2:
        values = values[0]
    return values


def coordinates_from_dataset(
    ds: xr.Dataset,
    variable: xr.DataArray,
    key: Optional[str] = None
) -> CurvilinearCoordinates:
    """
    Build the cell-centre coordinates of a variable.

    1D longitude/latitude vectors are expanded to 2D with ``np.meshgrid``.
    Fill values decoded to NaN mark cells excluded from indexing.
    """
    lon_name, lat_name = find_coordinate_names(ds, variable)
    lon = _plane(ds[lon_name].values)
    lat = _plane(ds[lat_name].values)

    if lon.ndim == 1 and lat.ndim == 1:
        lon, lat = np.meshgrid(lon, lat)

    expected = variable.shape[-2:]
    if lon.shape != expected or lat.shape != expected:
        raise InvalidConfigurationError(
            f"Coordinates {lon_name}/{lat_name} have shape {lon.shape}, "
            f"variable {variable.name!r} has grid shape {expected}")
    return CurvilinearCoordinates(lon, lat, key=key)


def open_dataset(path, variable_name: str) -> Tuple[xr.Dataset, xr.DataArray, CurvilinearCoordinates]:
    """
    Open a NetCDF file and locate a variable and its coordinates.

    Args:
        path: File path
        variable_name: Name of the data variable

    Returns:
        Tuple of (dataset, variable, coordinates). Close the dataset with
        ``close_dataset`` when done.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidConfigurationError: If the variable or coordinates are missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    ds = xr.open_dataset(path)
    try:
        if variable_name not in ds:
            raise InvalidConfigurationError(
                f"Variable {variable_name!r} not found in {path.name}. "
                f"Available: {list(ds.data_vars)}")
        variable = ds[variable_name]
        coords = coordinates_from_dataset(ds, variable, key=f"{path.resolve()}::{variable_name}")
    except Exception:
        ds.close()
        raise
    return ds, variable, coords


def close_dataset(ds: xr.Dataset) -> None:
    """Release the file handle behind a dataset."""
    ds.close()


def load_profile(
    profile: DatasetProfile,
    data_dir: str = ".",
    synthetic_size: Optional[int] = None
) -> Tuple[xr.Dataset, xr.DataArray, CurvilinearCoordinates]:
    """
    Open the dataset described by a profile.

    The synthetic profile is generated in memory; every other profile is
    read from ``data_dir``.
    """
    if profile.is_synthetic:
        size = synthetic_size if synthetic_size is not None else SYNTHETIC_SIZE
        ds = generate_synthetic_dataset(
            ny=size,
            nx=size,
            variable_name=profile.variable,
            spacing=profile.nominal_resolution
        )
        variable = ds[profile.variable]
        return ds, variable, coordinates_from_dataset(ds, variable)
    return open_dataset(Path(data_dir) / profile.filename, profile.variable)
