"""
chunk-scribe: transcribe long recordings by cutting them at silences.

The audio is split into chunks small enough for the speech-to-text API,
each chunk is transcribed in order, and a chat model labels the speakers
in the assembled transcript.
"""

__version__ = "0.1.0"
