"""riffstream - range-based audio streaming with multi-quality renditions."""

__version__ = "0.1.0"
