"""Parallel span scanning and top-N reduction."""

from top_few.solver.solve import main_top_few, scan_span, scan_spans, top_few

__all__ = ["main_top_few", "scan_span", "scan_spans", "top_few"]
