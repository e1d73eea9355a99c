"""CubeLUT: reader, writer and trilinear sampler for .cube color lookup tables."""

__version__ = "0.1.0"
