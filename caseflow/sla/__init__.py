"""
SLA Monitoring Module
=====================

Bounded context for SLA breach detection across the CRM.

Responsibilities:
- Resolve SLA thresholds from the configuration store
- Scan leads, contracts, payments, authority requirements and documents
  for overdue items
- Prioritize breaches and compute the aggregate health score
- Publish one immutable snapshot per tick on a fixed schedule
- Notify newly seen critical breaches via Slack
- Expose the last good snapshot over HTTP

The monitor is read-only: it never writes to the records it inspects.
"""

__version__ = "1.0.0"
