# src/prom_traffic_demo/__init__.py
"""Synthetic HTTP workload instrumented with Prometheus metrics."""

__version__ = "1.0.0"
