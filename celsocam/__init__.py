"""
celsocam: signaling relay between one camera producer and one viewer.
"""

__version__ = "1.0.0"
