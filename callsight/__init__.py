"""
CallSight: batch categorization of customer service call transcripts.
"""

from .__version__ import __version__

__all__ = ["__version__"]
