"""
Tests for Dataset Profiles, Loading and Synthetic Data

NetCDF files are written to a temporary directory with xarray, so the tests
need one of xarray's NetCDF backends (scipy is enough).

Run with: pytest tests/test_datasets.py -v
"""

import pytest
import numpy as np
import xarray as xr

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gridbench.datasets import (
    DATASET_PROFILES,
    close_dataset,
    coordinates_from_dataset,
    find_coordinate_names,
    get_dataset_profile,
    load_profile,
    open_dataset
)
from gridbench.exceptions import InvalidConfigurationError
from gridbench.synthetic_data import (
    FieldPattern,
    generate_benchmark_datasets,
    generate_curvilinear_grid,
    generate_field,
    generate_synthetic_dataset
)


class TestDatasetProfiles:
    """Tests for the built-in profiles."""

    def test_tags(self):
        """Profiles are numbered 0-3."""
        assert sorted(DATASET_PROFILES) == [0, 1, 2, 3]
        assert get_dataset_profile(0).name == "ORCA"
        assert get_dataset_profile(2).variable == "ch1"
        assert get_dataset_profile(3).is_synthetic

    @pytest.mark.parametrize("tag", [4, -1, "x", None])
    def test_unknown_tag(self, tag):
        """Unknown datasets fail closed."""
        with pytest.raises(InvalidConfigurationError):
            get_dataset_profile(tag)

    def test_default_parameters(self):
        """Defaults start at the nominal resolution."""
        params = get_dataset_profile(1).default_querying_parameters(max_iterations=3)

        assert params.minimum_resolution == 0.005
        assert params.expansion_factor == 2.12
        assert params.maximum_search_distance == 0.038
        assert params.max_iterations == 3

    @pytest.mark.parametrize("tag", sorted(DATASET_PROFILES))
    def test_default_parameters_valid(self, tag):
        """Every profile ships usable parameters."""
        get_dataset_profile(tag).default_querying_parameters().validate()

    def test_load_synthetic(self):
        """The synthetic profile is generated in memory."""
        ds, variable, coords = load_profile(get_dataset_profile(3), synthetic_size=20)

        assert variable.name == "sea_level"
        assert coords.shape == (20, 20)
        assert np.isclose(coords.nominal_resolution, get_dataset_profile(3).nominal_resolution, rtol=0.5)
        close_dataset(ds)

    def test_missing_file(self, tmp_path):
        """File-backed profiles look in the data directory."""
        with pytest.raises(FileNotFoundError):
            load_profile(get_dataset_profile(0), str(tmp_path))


class TestOpenDataset:
    """Tests for NetCDF loading and coordinate discovery."""

    def test_curvilinear_file(self, tmp_path):
        """2D coordinates are found from the coordinates attribute."""
        path = tmp_path / "curvilinear.nc"
        generate_synthetic_dataset(ny=12, nx=15, seed=1).to_netcdf(path)

        ds, variable, coords = open_dataset(path, "sea_level")
        try:
            assert coords.shape == (12, 15)
            assert variable.shape[-2:] == (12, 15)
            assert str(path.resolve()) in coords.key
        finally:
            close_dataset(ds)

    def test_coordinates_by_units(self, tmp_path):
        """Unconventional names are recognised by CF units."""
        lon, lat = generate_curvilinear_grid(6, 7, seed=2)
        ds = xr.Dataset(
            {"ch1": (("rows", "cols"), np.random.rand(6, 7).astype(np.float32))},
            coords={
                "glon": (("rows", "cols"), lon, {"units": "degrees_east"}),
                "glat": (("rows", "cols"), lat, {"units": "degrees_north"}),
            }
        )

        assert find_coordinate_names(ds, ds["ch1"]) == ("glon", "glat")

    def test_one_dimensional_coordinates(self, tmp_path):
        """1D lon/lat vectors are expanded to a grid."""
        path = tmp_path / "regular.nc"
        ds = xr.Dataset(
            {"sea_level": (("lat", "lon"), np.zeros((4, 6), dtype=np.float32))},
            coords={"lat": np.linspace(50, 53, 4), "lon": np.linspace(-5, 0, 6)}
        )
        ds.to_netcdf(path)

        ds, _, coords = open_dataset(path, "sea_level")
        try:
            assert coords.shape == (4, 6)
            assert np.allclose(coords.lon[0], np.linspace(-5, 0, 6))
            assert np.allclose(coords.lat[:, 0], np.linspace(50, 53, 4))
        finally:
            close_dataset(ds)

    def test_missing_file(self, tmp_path):
        """A missing path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            open_dataset(tmp_path / "absent.nc", "sea_level")

    def test_missing_variable(self, tmp_path):
        """An absent variable is a configuration error."""
        path = tmp_path / "curvilinear.nc"
        generate_synthetic_dataset(ny=5, nx=5).to_netcdf(path)

        with pytest.raises(InvalidConfigurationError):
            open_dataset(path, "ch1")

    def test_missing_coordinates(self):
        """A variable without lon/lat cannot be indexed."""
        ds = xr.Dataset({"v": (("y", "x"), np.zeros((3, 3)))})
        with pytest.raises(InvalidConfigurationError):
            coordinates_from_dataset(ds, ds["v"])


class TestSyntheticData:
    """Tests for the synthetic generators."""

    def test_grid_is_reproducible(self):
        """The same seed gives the same grid."""
        a = generate_curvilinear_grid(10, 10, jitter_std=0.2, seed=5)
        b = generate_curvilinear_grid(10, 10, jitter_std=0.2, seed=5)
        assert np.array_equal(a[0], b[0])
        assert np.array_equal(a[1], b[1])

    def test_grid_is_curvilinear(self):
        """Rotation makes longitude vary along both grid axes."""
        lon, _ = generate_curvilinear_grid(10, 10, rotation_deg=30.0)
        assert not np.allclose(np.diff(lon, axis=0), 0.0)
        assert not np.allclose(np.diff(lon, axis=1), np.diff(lon, axis=1)[0, 0])

    def test_land_fraction(self):
        """Land cells are NaN."""
        lon, lat = generate_curvilinear_grid(40, 40)
        values = generate_field(lon, lat, FieldPattern.RANDOM, land_fraction=0.3, seed=1)
        fraction = np.isnan(values).mean()
        assert 0.2 < fraction < 0.4

    def test_dataset_layout(self):
        """Dataset dims, coordinates and units follow NEMO conventions."""
        ds = generate_synthetic_dataset(ny=6, nx=8, n_times=3)

        assert ds["sea_level"].dims == ("time", "y", "x")
        assert ds["sea_level"].shape == (3, 6, 8)
        assert ds["nav_lon"].attrs["units"] == "degrees_east"
        assert ds["nav_lat"].attrs["units"] == "degrees_north"

    def test_benchmark_datasets(self):
        """Sizes map to square datasets."""
        datasets = generate_benchmark_datasets([5, 10])
        assert datasets[10]["sea_level"].shape == (1, 10, 10)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
