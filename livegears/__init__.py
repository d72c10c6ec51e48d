"""Record HTTP-FLV and HLS live streams to segmented files."""

__version__ = "0.2.2"