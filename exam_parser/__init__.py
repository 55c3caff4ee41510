"""
Exam Question Parser
====================
Turns unstructured exam text (usually extracted from a PDF) into validated,
structured multiple-choice question records persisted as JSON.

Architecture:
    - Normalizer: Strips inline line-break markup from extracted text
    - Tokenizer: Classifies each line as a question / option / answer marker
    - State Machine: Segments the token stream into candidate questions
    - Validator: Classifies candidates as valid or invalid with diagnostics
    - Sources / Storage: Pluggable text acquisition and JSON persistence

Version: 1.0.0
"""

__version__ = "1.0.0"
