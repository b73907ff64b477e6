"""
Curvilinear Grid Spatial Index Benchmarks

This package measures the build cost, heap footprint and query speed of the
nearest-neighbour indexes used to resample curvilinear geospatial grids
(ocean model and satellite swath data) onto regular output grids, and
provides an interactive loop for tuning approximate KD-tree search.

Main modules:
- synthetic_data: Generate curvilinear grids and datasets
- data_models: Coordinates, sample domains and search parameters
- geometry: Spatial index variants and their registry
- hpc: Timing, statistics and heap measurement
- benchmarking: Build-time and query-time benchmarks
- tuning: Interactive parameter tuning loop
"""

__version__ = "1.0.0"
