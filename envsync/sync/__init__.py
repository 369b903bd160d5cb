"""Reconciliation core — diff desired vs observed, plan, and apply.

This package provides:
- Differ: probe results -> ordered discrepancy records
- Planner: discrepancies -> ordered remediation steps
- Reconciler: sequential execution with partial-failure tolerance
- Update checker: manifest vs detected project ground truth
"""
