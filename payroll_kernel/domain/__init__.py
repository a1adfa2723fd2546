"""Pure domain primitives shared by every payroll layer."""
