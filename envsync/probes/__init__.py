"""Probes — read-only queries against the live machine, plus the one
command-executor seam they (and the reconciler) run commands through.
"""
