"""
Handwrite OCR Pipeline

Transcribe handwritten notes (images and PDFs) in a Markdown vault with Google
Gemini and write each transcription as a templated Markdown note.
"""

__version__ = "0.1.0"
