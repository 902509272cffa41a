"""
CallSight - Version and metadata
"""

__version__ = "1.0.0"
__author__ = "CallSight Contributors"
__license__ = "MIT"
__description__ = (
    "LLM-powered categorization and sentiment statistics for customer service calls"
)
