"""finscan: financial document text extraction.

Turns uploaded images and PDFs of bank statements, salary slips, Form 16
certificates, utility bills, and cheques into cleaned text annotated with
the document type and key fields, using OpenCV preprocessing, multi-attempt
Tesseract OCR, and pdfplumber for digital PDFs.
"""

__version__ = "1.0.0"
