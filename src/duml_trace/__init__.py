"""DUML capture trace reassembly and request/response pairing."""

__version__ = "0.3.0"
