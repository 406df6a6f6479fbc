"""Face-verified journaling backend with landmark-based mood inference"""

__version__ = "0.1.0"
