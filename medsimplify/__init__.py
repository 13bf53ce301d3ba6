"""
MedSimplify - Medical Report Simplification Service

Turns clinical report text (pasted or uploaded as PDF/plain text) into
patient-friendly language using a large language model, with decorative
image hints for the web client.

IMPORTANT: This is NOT a diagnosis tool. It must NEVER replace a doctor.
"""

__version__ = "1.0.0"
__author__ = "MedSimplify Team"
