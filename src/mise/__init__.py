"""
Mise - Recipe import service.

Turns a URL (recipe site, social post, video) or pasted text into a
structured recipe using a tiered extraction pipeline:
- Structured data (JSON-LD)
- Semi-structured markup (Microdata/RDFa)
- HTML heuristics
- AI fallback (paid, last resort)
"""

__version__ = "1.0.0"
