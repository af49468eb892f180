"""Camera module.

Components:
    pinhole: Pinhole camera basis and primary ray generation

pinhole allocates Taichi fields at import time; import it directly after
ti.init().
"""
