"""Material storage.

Components:
    phong: Phong material parameters (ambient, diffuse, specular, shininess,
        reflectance and texture mapping) stored in Taichi fields, indexed by
        material id

phong allocates Taichi fields at import time; import it directly after
ti.init().
"""
