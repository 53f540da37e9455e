"""Scanned Document OCR Service.

Uploads scanned images, extracts their text through a Google Cloud Vision
to Tesseract fallback chain, and stores the documents so the text can be
retrieved, edited, and saved again.
"""
