"""
LocalBiz Invoicing Kernel

Invoice lifecycle for a multi-tenant tradesperson SaaS:
- Decimal-only line and total computation
- Year-scoped invoice numbering, assigned atomically with the insert
- Central status transition table with typed errors
- Tenant-isolated persistence through a SQLAlchemy gateway
"""

__version__ = "0.1.0"
