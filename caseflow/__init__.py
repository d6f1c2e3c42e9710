"""
Caseflow SLA Monitor
====================

SLA breach detection and health scoring for the immigration-services
case management CRM.
"""

__version__ = "1.0.0"
