"""
Alerting Module
===============

Bounded Context for operational alerting and SLA analytics.

Responsibilities:
- Evaluate catalog threshold rules against per-organization metric snapshots
- Record alert events with at-most-one-active-per-definition dedup
- Track the one-way acknowledgment lifecycle
- Compute MTTA / acknowledgment / escalation statistics and trend buckets
- Hold notification preferences and escalation overrides per organization
"""

__version__ = "1.0.0"
