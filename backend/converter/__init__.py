"""
Bitrate converter backend.

Drives an external FFmpeg transcode and turns its unstructured stderr
into a live progress estimate for the operator UI.
"""

__version__ = "0.1.0"
