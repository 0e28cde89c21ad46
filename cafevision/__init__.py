"""
CafeVision: cafe design concepts and visualizations from a photo of a raw space
"""

__version__ = "1.0.0"
