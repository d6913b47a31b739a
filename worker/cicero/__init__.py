"""Cicero: City Council meeting discovery, transcription and summarization worker."""
