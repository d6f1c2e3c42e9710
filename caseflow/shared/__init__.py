"""
Shared Kernel Module
====================

Generic infrastructure shared by the application: structured logging and
HTTP middleware.

DO NOT add SLA business logic to the shared kernel.
"""
