"""Pure frozen dataclasses describing payroll period runs."""
