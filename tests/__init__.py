"""
Test suite for chunk-scribe.

This package contains tests for:
- Chunk planning and silence snapping
- The ffmpeg-backed media toolkit
- Speech-to-text and speaker labeling clients
- The end-to-end pipeline and the CLI
- Configuration management
"""
