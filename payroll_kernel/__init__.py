"""
Payroll Kernel

Shared foundation for the Colombian construction payroll engine:
- Structured JSON logging with run/employee context
- Typed exception hierarchy with machine-readable codes
- Decimal-only rounding rules for hours and money
- SQLAlchemy base, engine and read-only selector conventions
"""

__version__ = "0.1.0"
