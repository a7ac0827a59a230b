"""
course-dl: downloads HLS video-course content into single media files.
"""

__version__ = "0.1.0"
