"""
Unit tests for the threat inference router.

Test individual components in isolation:
- Data models (normalization, validation, merging)
- Reply decoder (envelopes, embedded JSON, required fields)
- Budget governor (pricing, status thresholds, capacity)
- Strategy router (baseline, tiered, canary, shadow, failure events)
- Workers AI client (error mapping, retries) against a mock transport
- API routes with the analysis facade overridden
"""
