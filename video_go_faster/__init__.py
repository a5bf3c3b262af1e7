"""RU: VideoGoFaster — ускоренные копии видео (2x/4x/8x) через FFmpeg.

EN: VideoGoFaster: sped-up copies of a video (2x/4x/8x) via FFmpeg.
"""

__version__ = "0.1.0"
