"""
Procure Kernel

Shared foundation for the three-way match reconciliation system:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- SQLAlchemy persistence for invoices, purchase orders and GRNs
- Read-only selectors that assemble matching inputs
"""

__version__ = "0.1.0"
