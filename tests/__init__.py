"""
Test Suite for the Curvilinear Grid Index Benchmarks

This package contains unit tests and integration tests for:
- Spatial index correctness against brute force
- Statistics, timing and heap measurement
- Build/query benchmarks and the interactive tuning loop
- Dataset loading, resampling and rendering

Run tests with: pytest -v
"""
