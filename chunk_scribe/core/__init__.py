"""
Core functionality for chunk-scribe.

This package contains the main logic for:
- Probing audio and detecting silences through ffmpeg
- Planning silence-snapped chunk boundaries
- Speech-to-text conversion of each chunk
- Transcript assembly and speaker labeling
- Configuration management
"""
