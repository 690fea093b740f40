"""
Question Paper Extraction Engine
================================
Recovers structured sub-questions (Q1a, Q1b, ...) with mark values from the
text of scanned or typeset exam papers, then builds paraphrase variants and
regenerates the paper.

Architecture:
    - Text Extractor: Decodes PDF pages into text and positioned tokens
    - Section Segmenter: Splits text per top-level question, fixing boundaries
    - Sub-question Locator: Strict regex pass, escalating to a flexible scan
    - Candidate Validator: Rejects headers and noise, normalizes text
    - Sequential Reconciler: Canonical a, b, c labeling per section
    - Position Resolver: Maps questions to layout regions for overlays
    - Paper Builder / Overlay: Regenerates the paper as HTML or patched PDF

Version: 1.0.0
"""

__version__ = "1.0.0"
