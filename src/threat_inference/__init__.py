"""
Threat Inference Router for security article analysis.

Turns short security articles into structured analyses containing:
- Category and severity (closed taxonomies)
- TL;DR summary and key points
- Affected sectors and threat actors
- Indicators of compromise (IPs, domains, CVEs, hashes, URLs, emails)
- Embedding vectors for semantic search

Architecture: strategy router (baseline / tiered / canary / shadow) over
Workers AI inference + daily compute budget governor + lenient reply decoder
"""

__version__ = "0.1.0"
