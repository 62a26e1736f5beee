# src/prom_traffic_demo/__main__.py
from .server import main

main()
