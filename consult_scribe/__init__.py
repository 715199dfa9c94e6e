"""
Consult Scribe - Consultation Transcription Microservice

A FastAPI-based service that sends doctor-patient consultation recordings
to a generative AI model for speaker-diarized transcription and exports the
result as structured JSON or flat scribe text.
"""

__version__ = "1.0.0"
