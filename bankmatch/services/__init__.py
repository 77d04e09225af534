"""Reconciliation services.

Import from the submodules directly (``bankmatch.services.rule_application``);
the package stays empty so schemas can depend on ``conditions`` without an
import cycle.
"""
