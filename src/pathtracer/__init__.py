"""Progressive Monte Carlo path tracer built on Taichi.

Renders scenes of triangle meshes and spheres with diffuse, metal and
dielectric materials, optional texture sets with normal and parallax
mapping, and a thin-lens camera. Frames accumulate into a running mean.

Initialize Taichi with fast math disabled before importing the rendering
modules:

    >>> ti.init(arch=ti.gpu, fast_math=False)

With fast math on, the compiler may fold away the NaN and Inf checks that
zero invalid samples and route NaN texture coordinates to pass-through.

Subpackages:
    core: RNG, vector helpers, integrator, accumulation and the frame loop
    camera: Look-at camera with depth of field
    geometry: Hit records and primitive intersection
    materials: Material table, scatter models and textures
    scene: Scene tables, scene manager, OBJ and JSON scene files
    preview: Tone mapping, PNG export and live preview
"""

__version__ = "0.1.0"
